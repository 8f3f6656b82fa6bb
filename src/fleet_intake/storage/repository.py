"""Tenant-scoped data access.

Every query issued through :class:`TenantRepository` filters on the scope's
tenant id; callers never build unscoped queries.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fleet_intake.errors import NoTenantError, NotFoundError
from fleet_intake.storage.models import Customer, MaintenanceRecord, Tenant, Truck, WorkOrder
from fleet_intake.tenancy.context import TenantScope, require_scope

logger = logging.getLogger(__name__)


class TenantRepository:
    """Reads and writes rows belonging to one tenant.

    Args:
        session: Open SQLAlchemy session
        scope: Resolved tenant scope
    """

    def __init__(self, session: Session, scope: TenantScope):
        self.scope = require_scope(scope)
        self.session = session
        self.tenant_id = self.scope.tenant_id

    def ensure_tenant(self) -> Tenant:
        """Return the scope's tenant row or raise NoTenantError if it is unknown."""
        tenant = self.session.get(Tenant, self.tenant_id)
        if tenant is None:
            raise NoTenantError(f"Unknown tenant: {self.tenant_id}")
        return tenant

    # -- trucks ---------------------------------------------------------------

    def find_truck_by_vin(self, vin: str) -> Optional[Truck]:
        stmt = select(Truck).where(Truck.tenant_id == self.tenant_id, Truck.vin == vin.upper())
        return self.session.execute(stmt).scalar_one_or_none()

    def get_truck(self, truck_id: str) -> Truck:
        return self._get(Truck, truck_id)

    def create_truck(self, vin: str, fields: Dict[str, Any]) -> Tuple[Truck, bool]:
        """Insert a truck, falling over to the existing row if another writer won.

        The insert runs in a savepoint so a unique-constraint violation on
        (tenant_id, vin) leaves the surrounding transaction usable.

        Returns:
            Tuple of (truck, created)
        """
        vin = vin.upper()
        truck = Truck(tenant_id=self.tenant_id, vin=vin, **fields)
        try:
            with self.session.begin_nested():
                self.session.add(truck)
                self.session.flush()
        except IntegrityError:
            logger.info(f"Truck {vin} was created concurrently; reusing existing row")
            existing = self.find_truck_by_vin(vin)
            if existing is None:
                raise
            return existing, False
        return truck, True

    # -- customers ------------------------------------------------------------

    def find_customer(self, id_ref: Optional[str] = None, name: Optional[str] = None) -> Optional[Customer]:
        """Match by external reference first, then by exact name."""
        if id_ref:
            stmt = select(Customer).where(
                Customer.tenant_id == self.tenant_id, Customer.external_id == id_ref
            ).order_by(Customer.created_at)
            customer = self.session.execute(stmt).scalars().first()
            if customer is not None:
                return customer
        if name:
            stmt = select(Customer).where(
                Customer.tenant_id == self.tenant_id, Customer.name == name
            ).order_by(Customer.created_at)
            return self.session.execute(stmt).scalars().first()
        return None

    def get_customer(self, customer_id: str) -> Customer:
        return self._get(Customer, customer_id)

    def create_customer(self, name: str, **fields: Any) -> Customer:
        customer = Customer(tenant_id=self.tenant_id, name=name, **fields)
        self.session.add(customer)
        self.session.flush()
        return customer

    # -- work orders ----------------------------------------------------------

    def get_work_order(self, work_order_id: str) -> WorkOrder:
        return self._get(WorkOrder, work_order_id)

    def find_work_order_by_idempotency_key(self, key: str) -> Optional[WorkOrder]:
        stmt = select(WorkOrder).where(
            WorkOrder.tenant_id == self.tenant_id, WorkOrder.idempotency_key == key
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def add_work_order(self, **fields: Any) -> WorkOrder:
        work_order = WorkOrder(tenant_id=self.tenant_id, **fields)
        self.session.add(work_order)
        self.session.flush()
        return work_order

    def list_work_orders(
        self,
        statuses: Optional[Sequence[str]] = None,
        created_from: Optional[Any] = None,
        created_until: Optional[Any] = None,
    ) -> List[WorkOrder]:
        """Work orders of the tenant, newest first."""
        stmt = select(WorkOrder).where(WorkOrder.tenant_id == self.tenant_id)
        if statuses:
            stmt = stmt.where(WorkOrder.status.in_(list(statuses)))
        if created_from is not None:
            stmt = stmt.where(WorkOrder.created_at >= created_from)
        if created_until is not None:
            stmt = stmt.where(WorkOrder.created_at <= created_until)
        stmt = stmt.order_by(WorkOrder.created_at.desc())
        return list(self.session.execute(stmt).scalars())

    # -- maintenance records --------------------------------------------------

    def add_maintenance_record(self, **fields: Any) -> MaintenanceRecord:
        record = MaintenanceRecord(tenant_id=self.tenant_id, **fields)
        self.session.add(record)
        self.session.flush()
        return record

    def maintenance_for_work_order(self, work_order_id: str) -> List[MaintenanceRecord]:
        stmt = select(MaintenanceRecord).where(
            MaintenanceRecord.tenant_id == self.tenant_id,
            MaintenanceRecord.work_order_id == work_order_id,
        ).order_by(MaintenanceRecord.created_at)
        return list(self.session.execute(stmt).scalars())

    def maintenance_for_truck(self, truck_id: str) -> List[MaintenanceRecord]:
        """Service history of a truck, most recent service first."""
        stmt = select(MaintenanceRecord).where(
            MaintenanceRecord.tenant_id == self.tenant_id,
            MaintenanceRecord.truck_id == truck_id,
        )
        records = list(self.session.execute(stmt).scalars())
        records.sort(
            key=lambda r: (r.service_date or date.min, r.created_at),
            reverse=True,
        )
        return records

    def _get(self, model, entity_id: str):
        stmt = select(model).where(model.tenant_id == self.tenant_id, model.id == entity_id)
        entity = self.session.execute(stmt).scalar_one_or_none()
        if entity is None:
            raise NotFoundError(f"{model.__name__} {entity_id} not found")
        return entity
