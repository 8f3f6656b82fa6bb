"""Pydantic schemas for the candidate -> reviewed -> committed work order flow.

``CandidateWorkOrder`` is untrusted extraction output and accepts loose
values. ``ReviewedWorkOrder`` is only produced by the review validator and
carries normalized, commit-ready values. ``CommitResult`` reports every
entity a commit touched.
"""

import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

VIN_LENGTH = 17

LooseNumber = Optional[Union[int, float, str]]


class ConfidenceLabel(str, Enum):
    """Overall confidence reported by the extraction service."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


SERVICE_CATEGORY_LABELS: Dict[str, str] = {
    "pm": "Preventive Maintenance",
    "brakes": "Brake Service",
    "tires": "Tire Service",
    "emissions": "Emissions/Aftertreatment",
    "engine": "Engine Repair",
    "transmission": "Transmission Service",
    "electrical": "Electrical Repair",
    "hvac": "HVAC/Climate Control",
    "suspension": "Suspension Service",
    "body": "Body Repair",
    "steering": "Steering Service",
    "fuel_system": "Fuel System Service",
    "other": "General Service",
}


def category_label(category: str) -> str:
    return SERVICE_CATEGORY_LABELS.get(category, SERVICE_CATEGORY_LABELS["other"])


class ServiceCategories(BaseModel):
    """Independent service-category flags; any subset is valid."""

    model_config = ConfigDict(extra="ignore")

    pm: bool = False
    brakes: bool = False
    tires: bool = False
    emissions: bool = False
    engine: bool = False
    transmission: bool = False
    electrical: bool = False
    hvac: bool = False
    suspension: bool = False
    body: bool = False
    steering: bool = False
    fuel_system: bool = False

    @field_validator("*", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        """LLMs return null, "yes" or "true" for flags."""
        if v is None:
            return False
        if isinstance(v, str):
            return v.strip().lower() in {"true", "yes", "y", "1", "x"}
        return bool(v)

    def flagged(self) -> List[str]:
        """Names of set flags in declaration order."""
        return [name for name in type(self).model_fields if getattr(self, name)]


class VehicleFields(BaseModel):
    """Vehicle identity as read from the document."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    vin: Optional[str] = None
    unit_number: Optional[str] = None
    year: LooseNumber = None
    make: Optional[str] = None
    model: Optional[str] = None
    odometer: LooseNumber = None
    engine_hours: LooseNumber = None
    license_plate: Optional[str] = None


class CustomerFields(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    name: Optional[str] = None
    id_ref: Optional[str] = None
    location: Optional[str] = None


class WorkOrderFields(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    work_order_number: Optional[str] = None
    date: Optional[str] = None
    complaint: Optional[str] = None
    cause: Optional[str] = None
    correction: Optional[str] = None
    fault_codes: Union[str, List[str], None] = None


class PartLine(BaseModel):
    """A part listed on the document (values untrusted)."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    part_number: Optional[str] = None
    description: Optional[str] = None
    quantity: LooseNumber = None
    unit_price: LooseNumber = None


class CandidateWorkOrder(BaseModel):
    """Unvalidated extraction output, freely editable by a reviewer."""

    truck: VehicleFields = Field(default_factory=VehicleFields)
    customer: CustomerFields = Field(default_factory=CustomerFields)
    work_order: WorkOrderFields = Field(default_factory=WorkOrderFields)
    service_categories: ServiceCategories = Field(default_factory=ServiceCategories)
    labor_hours: LooseNumber = None
    parts_listed: List[PartLine] = Field(default_factory=list)
    confidence: ConfidenceLabel = ConfidenceLabel.MEDIUM
    source_file_name: Optional[str] = None
    document_sha256: Optional[str] = Field(
        default=None, description="SHA-256 of the source document bytes"
    )


class ReviewedVehicle(BaseModel):
    vin: str = Field(..., min_length=VIN_LENGTH, max_length=VIN_LENGTH)
    unit_number: Optional[str] = None
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    odometer: Optional[int] = None
    engine_hours: Optional[float] = None
    license_plate: Optional[str] = None

    @field_validator("vin")
    @classmethod
    def uppercase_vin(cls, v: str) -> str:
        return v.upper()


class ReviewedCustomer(BaseModel):
    name: Optional[str] = None
    id_ref: Optional[str] = None
    location: Optional[str] = None


class ReviewedWorkOrderFields(BaseModel):
    work_order_number: Optional[str] = None
    date: Optional[dt.date] = None
    complaint: Optional[str] = None
    cause: Optional[str] = None
    correction: Optional[str] = None
    fault_codes: List[str] = Field(default_factory=list)


class ReviewedPart(BaseModel):
    part_number: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None


class ReviewedWorkOrder(BaseModel):
    """Normalized, commit-ready record produced by ``ReviewValidator.finalize``."""

    truck: ReviewedVehicle
    customer: ReviewedCustomer = Field(default_factory=ReviewedCustomer)
    work_order: ReviewedWorkOrderFields = Field(default_factory=ReviewedWorkOrderFields)
    service_categories: ServiceCategories = Field(default_factory=ServiceCategories)
    labor_hours: Optional[float] = None
    parts_listed: List[ReviewedPart] = Field(default_factory=list)
    confidence: ConfidenceLabel = ConfidenceLabel.MEDIUM
    source_file_name: Optional[str] = None
    document_sha256: Optional[str] = None


class ReviewIssue(BaseModel):
    """A single problem found while reviewing a candidate."""

    field: str
    message: str
    blocking: bool = True


class ReviewReport(BaseModel):
    """Result of a non-raising review pass."""

    normalized: Dict[str, Any] = Field(default_factory=dict)
    issues: List[ReviewIssue] = Field(default_factory=list)
    confidence: ConfidenceLabel = ConfidenceLabel.MEDIUM

    @property
    def commit_ready(self) -> bool:
        return not any(issue.blocking for issue in self.issues)


class CommitResult(BaseModel):
    """Identifiers of every entity touched by a commit."""

    work_order_id: str
    truck_id: Optional[str] = None
    customer_id: Optional[str] = None
    truck_auto_created: bool = False
    customer_auto_created: bool = False
    maintenance_record_ids: List[str] = Field(default_factory=list)
    replayed: bool = Field(
        default=False,
        description="True when an idempotency key matched an earlier commit",
    )
