"""Read side: work order lists and truck maintenance history."""

import logging
from datetime import date, datetime, time
from typing import Dict, List, Optional, Tuple, Union

from fleet_intake.schemas.records import (
    MaintenanceRecordView,
    MaintenanceSummary,
    WorkOrderView,
    statuses_for_filter,
)
from fleet_intake.storage.database import Database
from fleet_intake.storage.models import WorkOrder
from fleet_intake.storage.repository import TenantRepository
from fleet_intake.tenancy.context import TenantScope, require_scope
from fleet_intake.utils.date_parsing import parse_service_date

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str, None]
DateRange = Tuple[DateLike, DateLike]


def _as_date(value: DateLike, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    parsed = parse_service_date(value)
    if parsed is None:
        raise ValueError(f"Invalid {field} date: {value!r}")
    return parsed


def date_range_bounds(date_range: Optional[DateRange]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Creation-time bounds for a (start, end) range; the end day is inclusive."""
    if not date_range:
        return None, None
    start, end = date_range
    start_date = _as_date(start, "start")
    end_date = _as_date(end, "end")
    return (
        datetime.combine(start_date, time.min) if start_date else None,
        datetime.combine(end_date, time.max) if end_date else None,
    )


def to_view(work_order: WorkOrder) -> WorkOrderView:
    """View of a work order with ``customer_name`` backfilled for display.

    The backfill comes from the linked truck's customer and is never written
    to the stored row.
    """
    view = WorkOrderView.model_validate(work_order)
    if not view.customer_name and work_order.truck is not None and work_order.truck.customer is not None:
        view = view.model_copy(update={"customer_name": work_order.truck.customer.name})
    return view


class WorkOrderQuery:
    """Tenant-scoped queries over committed work orders."""

    def __init__(self, database: Database):
        self.database = database

    def list(
        self,
        scope: TenantScope,
        status_filter: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> List[WorkOrderView]:
        """
        List work orders of the scope's tenant, newest first.

        Args:
            scope: Resolved tenant scope
            status_filter: UI value (draft, in_progress, completed), a stored
                status, or None/"all" for no filtering
            date_range: Optional (start, end) creation dates, end inclusive

        Returns:
            Work order views with display-only customer names filled in
        """
        scope = require_scope(scope)
        statuses = statuses_for_filter(status_filter)
        created_from, created_until = date_range_bounds(date_range)

        with self.database.session_scope() as session:
            repo = TenantRepository(session, scope)
            rows = repo.list_work_orders(
                statuses=[status.value for status in statuses] if statuses else None,
                created_from=created_from,
                created_until=created_until,
            )
            views = [to_view(row) for row in rows]

        logger.debug(f"Listed {len(views)} work order(s) for tenant {scope.tenant_id}")
        return views

    def get(self, scope: TenantScope, work_order_id: str) -> WorkOrderView:
        scope = require_scope(scope)
        with self.database.session_scope() as session:
            view = to_view(TenantRepository(session, scope).get_work_order(work_order_id))
        return view

    def maintenance_history(self, scope: TenantScope, truck_id: str) -> List[MaintenanceRecordView]:
        """Maintenance records of one truck, most recent service first."""
        scope = require_scope(scope)
        with self.database.session_scope() as session:
            repo = TenantRepository(session, scope)
            repo.get_truck(truck_id)
            return [
                MaintenanceRecordView.model_validate(record)
                for record in repo.maintenance_for_truck(truck_id)
            ]

    def maintenance_summary(self, scope: TenantScope, truck_id: str) -> List[MaintenanceSummary]:
        """Latest record and count per service category of one truck."""
        history = self.maintenance_history(scope, truck_id)
        summary: Dict[str, MaintenanceSummary] = {}
        for record in history:
            entry = summary.get(record.service_category)
            if entry is None:
                summary[record.service_category] = MaintenanceSummary(
                    service_category=record.service_category,
                    service_type=record.service_type,
                    count=1,
                    last_service_date=record.service_date,
                    last_odometer=record.odometer_at_service,
                    latest_record_id=record.id,
                )
            else:
                entry.count += 1
        return sorted(summary.values(), key=lambda s: s.service_category)
