"""Read-side views and enumerations for committed records."""

import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class WorkOrderStatus(str, Enum):
    """Work order lifecycle. Transitions only move forward."""

    EXTRACTED = "extracted"
    REVIEWED = "reviewed"
    LINKED = "linked"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER: Tuple[WorkOrderStatus, ...] = (
    WorkOrderStatus.EXTRACTED,
    WorkOrderStatus.REVIEWED,
    WorkOrderStatus.LINKED,
    WorkOrderStatus.COMPLETED,
)


class MaintenanceSource(str, Enum):
    WORK_ORDER = "work_order"
    MANUAL = "manual"


# UI filter values -> stored statuses
UI_STATUS_FILTERS: Dict[str, Tuple[WorkOrderStatus, ...]] = {
    "draft": (WorkOrderStatus.EXTRACTED,),
    "in_progress": (WorkOrderStatus.REVIEWED, WorkOrderStatus.LINKED),
    "completed": (WorkOrderStatus.COMPLETED,),
}

# Stored status written when the UI reports a status value
UI_STATUS_TO_STORED: Dict[str, WorkOrderStatus] = {
    "draft": WorkOrderStatus.EXTRACTED,
    "in_progress": WorkOrderStatus.REVIEWED,
    "complete": WorkOrderStatus.COMPLETED,
    "completed": WorkOrderStatus.COMPLETED,
}


def statuses_for_filter(status_filter: Optional[str]) -> Optional[Tuple[WorkOrderStatus, ...]]:
    """Map a UI or stored status filter to the stored statuses it matches.

    Returns None when the filter means "no filtering" (None, "" or "all").

    Raises:
        ValueError: If the filter is not a known UI value or stored status.
    """
    if status_filter is None:
        return None
    key = status_filter.strip().lower()
    if key in ("", "all"):
        return None
    if key in UI_STATUS_FILTERS:
        return UI_STATUS_FILTERS[key]
    try:
        return (WorkOrderStatus(key),)
    except ValueError:
        raise ValueError(f"Unknown status filter: {status_filter!r}") from None


def stored_status(value: str) -> WorkOrderStatus:
    """Map a UI status value (or a stored status) onto the state machine."""
    key = value.strip().lower()
    if key in UI_STATUS_TO_STORED:
        return UI_STATUS_TO_STORED[key]
    return WorkOrderStatus(key)


class WorkOrderView(BaseModel):
    """A work order as returned by queries, with display-only fields filled in."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    status: WorkOrderStatus
    truck_id: Optional[str] = None
    customer_id: Optional[str] = None
    work_order_number: Optional[str] = None
    work_order_date: Optional[dt.date] = None
    customer_name: Optional[str] = None
    customer_id_ref: Optional[str] = None
    customer_location: Optional[str] = None
    complaint: Optional[str] = None
    cause: Optional[str] = None
    correction: Optional[str] = None
    fault_codes: List[str] = Field(default_factory=list)
    extracted_vin: Optional[str] = None
    extracted_unit_number: Optional[str] = None
    extracted_year: Optional[int] = None
    extracted_make: Optional[str] = None
    extracted_model: Optional[str] = None
    extracted_odometer: Optional[int] = None
    extracted_engine_hours: Optional[float] = None
    labor_hours: Optional[float] = None
    truck_auto_created: bool = False
    extraction_confidence: Optional[str] = None
    source_file_name: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @property
    def is_linked(self) -> bool:
        """False means "not yet linked" to a truck; informational only."""
        return self.truck_id is not None


class MaintenanceRecordView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    truck_id: str
    work_order_id: Optional[str] = None
    service_category: str
    service_type: str
    description: Optional[str] = None
    notes: Optional[str] = None
    service_date: Optional[dt.date] = None
    odometer_at_service: Optional[int] = None
    engine_hours_at_service: Optional[float] = None
    labor_hours: Optional[float] = None
    parts_used: List[Dict[str, Any]] = Field(default_factory=list)
    source: MaintenanceSource = MaintenanceSource.WORK_ORDER
    created_at: Optional[dt.datetime] = None


class MaintenanceSummary(BaseModel):
    """Latest record and record count for one service category of a truck."""

    service_category: str
    service_type: str
    count: int
    last_service_date: Optional[dt.date] = None
    last_odometer: Optional[int] = None
    latest_record_id: str
