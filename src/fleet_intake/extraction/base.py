"""Contract for the generative candidate extraction collaborator."""

from typing import Optional, Protocol, runtime_checkable

from fleet_intake.schemas.work_order import CandidateWorkOrder
from fleet_intake.tenancy.context import TenantScope


@runtime_checkable
class CandidateExtractor(Protocol):
    """Turns raw document text into an untrusted candidate work order.

    Implementations return a candidate carrying a confidence label, or raise
    ``ExtractionServiceError`` / ``ExtractionServiceTimeout``. They never
    return an empty candidate in place of a failure.
    """

    def extract(
        self,
        raw_text: str,
        scope: TenantScope,
        source_file_name: Optional[str] = None,
    ) -> CandidateWorkOrder:
        ...
