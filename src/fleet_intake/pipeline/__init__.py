"""Intake, commit and status pipeline stages."""

from fleet_intake.pipeline.commit import CommitPipeline, derive_maintenance_entries
from fleet_intake.pipeline.intake import IntakeService
from fleet_intake.pipeline.status import WorkOrderLifecycle

__all__ = ["CommitPipeline", "IntakeService", "WorkOrderLifecycle", "derive_maintenance_entries"]
