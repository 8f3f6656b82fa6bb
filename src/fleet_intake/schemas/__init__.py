"""Value types passed between intake stages."""

from fleet_intake.schemas.work_order import (
    SERVICE_CATEGORY_LABELS,
    VIN_LENGTH,
    CandidateWorkOrder,
    CommitResult,
    ConfidenceLabel,
    CustomerFields,
    PartLine,
    ReviewedWorkOrder,
    ReviewIssue,
    ReviewReport,
    ServiceCategories,
    VehicleFields,
    WorkOrderFields,
    category_label,
)
from fleet_intake.schemas.records import (
    MaintenanceRecordView,
    MaintenanceSource,
    MaintenanceSummary,
    WorkOrderStatus,
    WorkOrderView,
)

__all__ = [
    "SERVICE_CATEGORY_LABELS",
    "VIN_LENGTH",
    "CandidateWorkOrder",
    "CommitResult",
    "ConfidenceLabel",
    "CustomerFields",
    "MaintenanceRecordView",
    "MaintenanceSource",
    "MaintenanceSummary",
    "PartLine",
    "ReviewedWorkOrder",
    "ReviewIssue",
    "ReviewReport",
    "ServiceCategories",
    "VehicleFields",
    "WorkOrderFields",
    "WorkOrderStatus",
    "WorkOrderView",
    "category_label",
]
