"""Commit of a reviewed work order into Truck, Customer, WorkOrder and MaintenanceRecord rows.

Each step commits on its own. When a later step fails, the raised
``CommitError`` lists what the earlier steps persisted so a manual retry can
be made safely: truck resolution is idempotent by (tenant, VIN), and an
idempotency key makes the work order and its maintenance records reusable.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fleet_intake.config.settings import LaborAllocation
from fleet_intake.errors import CommitError, IdempotencyConflictError
from fleet_intake.schemas.records import MaintenanceSource, WorkOrderStatus
from fleet_intake.schemas.work_order import CommitResult, ReviewedWorkOrder, category_label
from fleet_intake.storage.database import Database
from fleet_intake.storage.models import Truck, WorkOrder
from fleet_intake.storage.repository import TenantRepository
from fleet_intake.tenancy.context import TenantScope, require_scope
from fleet_intake.utils.hashing import commit_idempotency_key, payload_digest

logger = logging.getLogger(__name__)

OTHER_CATEGORY = "other"

# Reviewed vehicle field -> Truck column
_TRUCK_FIELD_MAP = {
    "unit_number": "unit_number",
    "year": "year",
    "make": "make",
    "model": "model",
    "license_plate": "license_plate",
    "odometer": "odometer_miles",
    "engine_hours": "engine_hours",
}


def parse_location(location: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Split "City, ST" into (city, state). Text without a comma is all city."""
    if not location:
        return None, None
    city, _, state = location.partition(",")
    return city.strip() or None, state.strip() or None


def allocate_labor(
    labor_hours: Optional[float], category_count: int, allocation: LaborAllocation
) -> Optional[float]:
    """Labor hours recorded on each of ``category_count`` maintenance records."""
    if labor_hours is None or category_count <= 1:
        return labor_hours
    if allocation == LaborAllocation.DUPLICATE:
        return labor_hours
    return labor_hours / category_count


def derive_maintenance_entries(
    reviewed: ReviewedWorkOrder, allocation: LaborAllocation = LaborAllocation.SPLIT
) -> List[Dict[str, Any]]:
    """Maintenance record values implied by a reviewed work order.

    One entry per flagged service category. With no flag set, a single
    ``other`` entry is produced when labor hours, a complaint or a correction
    were captured; otherwise nothing.
    """
    categories = reviewed.service_categories.flagged()
    wo = reviewed.work_order
    if not categories:
        if reviewed.labor_hours is None and not wo.complaint and not wo.correction:
            return []
        categories = [OTHER_CATEGORY]

    labor = allocate_labor(reviewed.labor_hours, len(categories), allocation)
    parts = [part.model_dump(exclude_none=True) for part in reviewed.parts_listed]

    return [
        {
            "service_category": category,
            "service_type": category_label(category),
            "description": wo.correction or wo.complaint,
            "notes": wo.cause,
            "service_date": wo.date,
            "labor_hours": labor,
            "parts_used": parts,
        }
        for category in categories
    ]


def reviewed_digest(reviewed: ReviewedWorkOrder) -> str:
    """Digest of the reviewed content; the source file name is provenance only."""
    return payload_digest(reviewed.model_dump(mode="json", exclude={"source_file_name"}))


def _check_same_payload(work_order: WorkOrder, digest: str) -> None:
    if work_order.payload_digest and work_order.payload_digest != digest:
        raise IdempotencyConflictError(
            f"Idempotency key {work_order.idempotency_key} was used for a different "
            f"reviewed work order ({work_order.id})"
        )


class CommitPipeline:
    """Writes reviewed work orders for one tenant at a time.

    Args:
        database: Store to write to
        labor_allocation: How one labor figure is spread across categories
    """

    def __init__(self, database: Database, labor_allocation: LaborAllocation = LaborAllocation.SPLIT):
        self.database = database
        self.labor_allocation = labor_allocation

    @classmethod
    def from_settings(cls, database: Database, settings) -> "CommitPipeline":
        return cls(database, labor_allocation=settings.labor_allocation)

    def commit(
        self,
        reviewed: ReviewedWorkOrder,
        scope: TenantScope,
        idempotency_key: Optional[str] = None,
    ) -> CommitResult:
        """
        Commit a reviewed work order.

        Args:
            reviewed: Output of ``ReviewValidator.finalize``
            scope: Resolved tenant scope
            idempotency_key: Retry key; when omitted and the document hash is
                known it is derived from the hash, the tenant and the reviewed
                content, so a corrected record commits as new work

        Returns:
            Identifiers of every touched entity

        Raises:
            NoTenantError: If the scope is empty or names an unknown tenant
            CommitError: If a step fails; ``persisted`` lists earlier writes
            IdempotencyConflictError: If ``idempotency_key`` was already used
                for a different reviewed record
        """
        scope = require_scope(scope)
        if not isinstance(reviewed, ReviewedWorkOrder):
            raise TypeError("commit() requires a ReviewedWorkOrder from ReviewValidator.finalize")

        digest = reviewed_digest(reviewed)
        if idempotency_key is None and reviewed.document_sha256:
            idempotency_key = commit_idempotency_key(reviewed.document_sha256, scope.tenant_id, digest)

        persisted: Dict[str, Any] = {}

        with self._stage("lookup", persisted):
            with self.database.session_scope() as session:
                repo = TenantRepository(session, scope)
                repo.ensure_tenant()
                if idempotency_key:
                    existing = repo.find_work_order_by_idempotency_key(idempotency_key)
                    if existing is not None:
                        _check_same_payload(existing, digest)
                        return self._replay(repo, existing, reviewed, persisted)

        with self._stage("truck", persisted):
            with self.database.session_scope() as session:
                truck, truck_created = self._resolve_truck(TenantRepository(session, scope), reviewed)
                truck_id = truck.id
        persisted["truck_id"] = truck_id
        persisted["truck_auto_created"] = truck_created

        with self._stage("customer", persisted):
            with self.database.session_scope() as session:
                customer_id, customer_created = self._resolve_customer(
                    TenantRepository(session, scope), reviewed, truck_id
                )
        if customer_id:
            persisted["customer_id"] = customer_id
            persisted["customer_auto_created"] = customer_created

        with self._stage("work_order", persisted):
            with self.database.session_scope() as session:
                repo = TenantRepository(session, scope)
                work_order, created = self._create_work_order(
                    repo, reviewed, truck_id, customer_id, truck_created, idempotency_key, digest
                )
                if not created:
                    _check_same_payload(work_order, digest)
                    # The concurrent winner still owns its maintenance step
                    return self._replay(repo, work_order, reviewed, persisted, complete_missing=False)
                work_order_id = work_order.id
        persisted["work_order_id"] = work_order_id

        with self._stage("maintenance_records", persisted):
            with self.database.session_scope() as session:
                repo = TenantRepository(session, scope)
                record_ids = self._create_maintenance_records(repo, reviewed, truck_id, work_order_id)
        persisted["maintenance_record_ids"] = record_ids

        logger.info(
            f"Committed work order {work_order_id} for tenant {scope.tenant_id}: "
            f"truck={truck_id} (new={truck_created}), customer={customer_id}, "
            f"{len(record_ids)} maintenance record(s)"
        )
        return CommitResult(
            work_order_id=work_order_id,
            truck_id=truck_id,
            customer_id=customer_id,
            truck_auto_created=truck_created,
            customer_auto_created=customer_created,
            maintenance_record_ids=record_ids,
        )

    @contextmanager
    def _stage(self, stage: str, persisted: Dict[str, Any]) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Commit failed at {stage} step: {e}")
            raise CommitError(
                f"Commit failed at {stage} step: {e}",
                stage=stage,
                persisted=persisted,
                original_error=e,
            ) from e

    def _resolve_truck(self, repo: TenantRepository, reviewed: ReviewedWorkOrder) -> Tuple[Truck, bool]:
        vehicle = reviewed.truck
        supplied = {
            column: getattr(vehicle, field)
            for field, column in _TRUCK_FIELD_MAP.items()
            if getattr(vehicle, field) is not None
        }
        service_date = reviewed.work_order.date

        truck = repo.find_truck_by_vin(vehicle.vin)
        created = False
        if truck is None:
            fields = dict(supplied)
            if service_date is not None:
                fields["last_service_date"] = service_date
                fields["last_service_odometer"] = vehicle.odometer
            truck, created = repo.create_truck(vehicle.vin, fields)
            if created:
                logger.info(f"Created truck {truck.vin} ({truck.id})")
                return truck, True

        # Only supplied fields are written; stored values are never nulled
        for column, value in supplied.items():
            setattr(truck, column, value)
        if service_date is not None and (
            truck.last_service_date is None or service_date >= truck.last_service_date
        ):
            truck.last_service_date = service_date
            if vehicle.odometer is not None:
                truck.last_service_odometer = vehicle.odometer
        repo.session.flush()
        logger.debug(f"Updated truck {truck.vin} fields: {sorted(supplied)}")
        return truck, created

    def _resolve_customer(
        self, repo: TenantRepository, reviewed: ReviewedWorkOrder, truck_id: str
    ) -> Tuple[Optional[str], bool]:
        info = reviewed.customer
        if not info.name and not info.id_ref:
            return None, False

        customer = repo.find_customer(id_ref=info.id_ref, name=info.name)
        created = False
        if customer is None:
            if not info.name:
                logger.info(f"No customer matches reference {info.id_ref}; not creating one without a name")
                return None, False
            city, state = parse_location(info.location)
            customer = repo.create_customer(
                info.name, external_id=info.id_ref, city=city, state=state
            )
            created = True
            logger.info(f"Created customer {customer.name} ({customer.id})")

        truck = repo.get_truck(truck_id)
        if truck.customer_id is None:
            truck.customer_id = customer.id
            repo.session.flush()
        return customer.id, created

    def _create_work_order(
        self,
        repo: TenantRepository,
        reviewed: ReviewedWorkOrder,
        truck_id: Optional[str],
        customer_id: Optional[str],
        truck_created: bool,
        idempotency_key: Optional[str],
        digest: Optional[str] = None,
    ) -> Tuple[WorkOrder, bool]:
        vehicle = reviewed.truck
        wo = reviewed.work_order
        fields = dict(
            truck_id=truck_id,
            customer_id=customer_id,
            work_order_number=wo.work_order_number,
            work_order_date=wo.date,
            status=WorkOrderStatus.EXTRACTED.value,
            customer_name=reviewed.customer.name,
            customer_id_ref=reviewed.customer.id_ref,
            customer_location=reviewed.customer.location,
            complaint=wo.complaint,
            cause=wo.cause,
            correction=wo.correction,
            fault_codes=list(wo.fault_codes),
            extracted_vin=vehicle.vin,
            extracted_unit_number=vehicle.unit_number,
            extracted_year=vehicle.year,
            extracted_make=vehicle.make,
            extracted_model=vehicle.model,
            extracted_odometer=vehicle.odometer,
            extracted_engine_hours=vehicle.engine_hours,
            labor_hours=reviewed.labor_hours,
            parts_listed=[part.model_dump(exclude_none=True) for part in reviewed.parts_listed],
            truck_auto_created=truck_created,
            extraction_confidence=reviewed.confidence.value,
            source_file_name=reviewed.source_file_name,
            idempotency_key=idempotency_key,
            payload_digest=digest,
        )
        try:
            with repo.session.begin_nested():
                work_order = repo.add_work_order(**fields)
        except IntegrityError:
            if not idempotency_key:
                raise
            existing = repo.find_work_order_by_idempotency_key(idempotency_key)
            if existing is None:
                raise
            logger.info(f"Work order for key {idempotency_key} was committed concurrently")
            return existing, False
        return work_order, True

    def _create_maintenance_records(
        self,
        repo: TenantRepository,
        reviewed: ReviewedWorkOrder,
        truck_id: Optional[str],
        work_order_id: Optional[str],
    ) -> List[str]:
        if truck_id is None:
            logger.info("No truck resolved; skipping maintenance records")
            return []

        truck = repo.get_truck(truck_id)
        odometer = reviewed.truck.odometer if reviewed.truck.odometer is not None else truck.odometer_miles
        engine_hours = (
            reviewed.truck.engine_hours if reviewed.truck.engine_hours is not None else truck.engine_hours
        )

        record_ids = []
        for entry in derive_maintenance_entries(reviewed, self.labor_allocation):
            try:
                with repo.session.begin_nested():
                    record = repo.add_maintenance_record(
                        truck_id=truck_id,
                        work_order_id=work_order_id,
                        odometer_at_service=odometer,
                        engine_hours_at_service=engine_hours,
                        source=MaintenanceSource.WORK_ORDER.value,
                        **entry,
                    )
            except IntegrityError:
                # One record per (work order, category); another writer got there first
                record = self._existing_record(repo, work_order_id, entry["service_category"])
                if record is None:
                    raise
            record_ids.append(record.id)
        return record_ids

    @staticmethod
    def _existing_record(repo: TenantRepository, work_order_id: Optional[str], category: str):
        if work_order_id is None:
            return None
        for record in repo.maintenance_for_work_order(work_order_id):
            if record.service_category == category:
                return record
        return None

    def _replay(
        self,
        repo: TenantRepository,
        work_order: WorkOrder,
        reviewed: ReviewedWorkOrder,
        persisted: Dict[str, Any],
        complete_missing: bool = True,
    ) -> CommitResult:
        """Result for a key that was already committed.

        A sequential retry after a failed maintenance step finishes the missing
        records. Nothing this call did created a truck or customer.
        """
        persisted.update(
            work_order_id=work_order.id,
            truck_id=work_order.truck_id,
            customer_id=work_order.customer_id,
        )
        records = repo.maintenance_for_work_order(work_order.id)
        if records or not complete_missing:
            record_ids = [record.id for record in records]
        else:
            record_ids = self._create_maintenance_records(
                repo, reviewed, work_order.truck_id, work_order.id
            )
        persisted["maintenance_record_ids"] = record_ids

        logger.info(f"Idempotency key matched work order {work_order.id}; reusing it")
        return CommitResult(
            work_order_id=work_order.id,
            truck_id=work_order.truck_id,
            customer_id=work_order.customer_id,
            truck_auto_created=False,
            customer_auto_created=False,
            maintenance_record_ids=record_ids,
            replayed=True,
        )
