"""Exception hierarchy for the work-order intake pipeline.

Every error carries a stable ``error_type`` so callers (CLI, API layers) can
report failures without parsing messages.
"""

from typing import Any, Dict, List, Optional


class IntakeError(Exception):
    """Base exception class for all intake-related errors."""

    error_type = "intake_error"

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        """
        Initialize the IntakeError.

        Args:
            message: Error message
            original_error: Original exception if this is a wrapped error
        """
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error_type": self.error_type, "message": self.message}


class NoTenantError(IntakeError):
    """Raised when no tenant scope could be resolved for an operation."""

    error_type = "no_tenant"


class ImpersonationError(IntakeError):
    """Raised when an impersonation request violates the admin rules."""

    error_type = "impersonation_refused"


class ExtractionError(IntakeError):
    """Raised when a document is unreadable or yields too little text."""

    error_type = "extraction_failed"


class ExtractionServiceError(IntakeError):
    """Raised when the candidate extraction service fails."""

    error_type = "extraction_service_error"


class ExtractionServiceTimeout(ExtractionServiceError):
    """Raised when the candidate extraction service does not answer in time."""

    error_type = "extraction_service_timeout"


class ValidationError(IntakeError):
    """Raised by the final review gate when a record is not committable."""

    error_type = "validation_failed"

    def __init__(self, issues: List["ReviewIssue"]):  # noqa: F821
        self.issues = list(issues)
        summary = "; ".join(f"{issue.field}: {issue.message}" for issue in self.issues)
        super().__init__(f"Record is not committable: {summary}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["issues"] = [issue.model_dump() for issue in self.issues]
        return data


class CommitError(IntakeError):
    """Raised when a commit fails after zero or more entities were persisted.

    ``persisted`` lists what already exists in the store so a manual retry
    (ideally with the same idempotency key) does not duplicate it.
    """

    error_type = "commit_failed"

    def __init__(
        self,
        message: str,
        stage: str,
        persisted: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        self.stage = stage
        self.persisted = dict(persisted or {})
        super().__init__(message, original_error=original_error)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["stage"] = self.stage
        data["persisted"] = self.persisted
        return data


class IdempotencyConflictError(IntakeError):
    """An idempotency key was reused for a different reviewed work order."""

    error_type = "idempotency_conflict"


class StatusTransitionError(IntakeError):
    """Raised when a work order status change would move backwards."""

    error_type = "invalid_status_transition"


class WorkOrderLockedError(StatusTransitionError):
    """Raised when a completed work order would be mutated."""

    error_type = "work_order_locked"


class NotFoundError(IntakeError):
    """Raised when an entity does not exist within the resolved tenant."""

    error_type = "not_found"
