"""Work order status state machine.

    extracted -> reviewed -> linked -> completed

Transitions only move forward. ``completed`` is terminal: once reached, no
field of the work order may change.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from fleet_intake.errors import StatusTransitionError, ValidationError, WorkOrderLockedError
from fleet_intake.review.validator import normalize_fault_codes, normalize_text
from fleet_intake.schemas.records import WorkOrderStatus, WorkOrderView, stored_status
from fleet_intake.schemas.work_order import ReviewIssue
from fleet_intake.storage.database import Database
from fleet_intake.storage.models import WorkOrder
from fleet_intake.storage.repository import TenantRepository
from fleet_intake.tenancy.context import TenantScope, require_scope
from fleet_intake.utils.date_parsing import parse_service_date
from fleet_intake.utils.number_parsing import parse_lenient_number

logger = logging.getLogger(__name__)


class WorkOrderEdits(BaseModel):
    """Reviewer corrections applied to a committed work order."""

    model_config = ConfigDict(extra="forbid")

    work_order_number: Optional[str] = None
    work_order_date: Optional[date] = None
    customer_name: Optional[str] = None
    customer_id_ref: Optional[str] = None
    customer_location: Optional[str] = None
    complaint: Optional[str] = None
    cause: Optional[str] = None
    correction: Optional[str] = None
    fault_codes: Optional[List[str]] = None
    labor_hours: Optional[float] = None

    @field_validator(
        "work_order_number", "customer_name", "customer_id_ref", "customer_location",
        "complaint", "cause", "correction", mode="before",
    )
    @classmethod
    def strip_text(cls, v: Any) -> Optional[str]:
        return normalize_text(v)

    @field_validator("work_order_date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Optional[date]:
        return parse_service_date(v)

    @field_validator("fault_codes", mode="before")
    @classmethod
    def parse_fault_codes(cls, v: Any) -> List[str]:
        return normalize_fault_codes(v)

    @field_validator("labor_hours", mode="before")
    @classmethod
    def parse_labor(cls, v: Any) -> Optional[float]:
        return parse_lenient_number(v)


def check_transition(current: WorkOrderStatus, target: WorkOrderStatus) -> None:
    """Raise if moving from ``current`` to ``target`` is not allowed."""
    if current == WorkOrderStatus.COMPLETED:
        raise WorkOrderLockedError("Work order is completed and can no longer change")
    if target.rank < current.rank:
        raise StatusTransitionError(
            f"Cannot move work order from {current.value} back to {target.value}"
        )


class WorkOrderLifecycle:
    """Status transitions and post-commit edits of work orders."""

    def __init__(self, database: Database):
        self.database = database

    def mark_reviewed(
        self, scope: TenantScope, work_order_id: str, edits: Optional[Dict[str, Any]] = None
    ) -> WorkOrderView:
        """Apply reviewer edits and confirm the work order.

        A work order already past ``reviewed`` keeps its status; edits still apply.
        """
        changes = self._parse_edits(edits or {})
        return self._update(scope, work_order_id, WorkOrderStatus.REVIEWED, changes, advance_only=True)

    def link(
        self,
        scope: TenantScope,
        work_order_id: str,
        truck_id: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> WorkOrderView:
        """Associate a truck and/or customer and mark the work order linked."""
        if truck_id is None and customer_id is None:
            raise ValueError("link() requires a truck_id or a customer_id")

        scope = require_scope(scope)
        with self.database.session_scope() as session:
            repo = TenantRepository(session, scope)
            work_order = repo.get_work_order(work_order_id)
            check_transition(WorkOrderStatus(work_order.status), WorkOrderStatus.LINKED)
            if truck_id is not None:
                work_order.truck_id = repo.get_truck(truck_id).id
            if customer_id is not None:
                customer = repo.get_customer(customer_id)
                work_order.customer_id = customer.id
            self._set_status(work_order, WorkOrderStatus.LINKED)
            session.flush()
            return WorkOrderView.model_validate(work_order)

    def complete(self, scope: TenantScope, work_order_id: str) -> WorkOrderView:
        return self._update(scope, work_order_id, WorkOrderStatus.COMPLETED, {})

    def transition(
        self, scope: TenantScope, work_order_id: str, target: Union[WorkOrderStatus, str]
    ) -> WorkOrderView:
        """Move to ``target`` directly; the same forward-only rules apply.

        ``target`` may be a stored status or a UI value such as ``complete``.
        """
        if not isinstance(target, WorkOrderStatus):
            try:
                target = stored_status(target)
            except ValueError:
                raise StatusTransitionError(f"Unknown work order status: {target!r}") from None
        return self._update(scope, work_order_id, target, {})

    def _parse_edits(self, edits: Dict[str, Any]) -> Dict[str, Any]:
        try:
            parsed = WorkOrderEdits.model_validate(edits)
        except PydanticValidationError as e:
            raise ValidationError([
                ReviewIssue(
                    field=".".join(str(part) for part in error.get("loc", ())),
                    message=error.get("msg", "Invalid value"),
                )
                for error in e.errors()
            ]) from e
        return parsed.model_dump(exclude_unset=True)

    def _update(
        self,
        scope: TenantScope,
        work_order_id: str,
        target: WorkOrderStatus,
        changes: Dict[str, Any],
        advance_only: bool = False,
    ) -> WorkOrderView:
        scope = require_scope(scope)
        with self.database.session_scope() as session:
            repo = TenantRepository(session, scope)
            work_order = repo.get_work_order(work_order_id)
            current = WorkOrderStatus(work_order.status)
            if advance_only and current != WorkOrderStatus.COMPLETED and target.rank < current.rank:
                target = current
            check_transition(current, target)

            for name, value in changes.items():
                setattr(work_order, name, value)
            self._set_status(work_order, target)
            session.flush()
            return WorkOrderView.model_validate(work_order)

    def _set_status(self, work_order: WorkOrder, target: WorkOrderStatus) -> None:
        if work_order.status != target.value:
            logger.info(f"Work order {work_order.id}: {work_order.status} -> {target.value}")
            work_order.status = target.value
