"""
Relational models for tenants, trucks, customers, work orders and maintenance history.

Every row carries ``tenant_id``; trucks are unique per (tenant_id, vin).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from fleet_intake.schemas.records import MaintenanceSource, WorkOrderStatus
from fleet_intake.storage.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    # naive UTC, as stored by DateTime columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Tenant(Base):
    """An isolated fleet-maintenance organization"""

    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)


class Customer(Base):
    """Customer of a shop; matched by external reference, then exact name"""

    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    external_id = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)

    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    trucks = relationship("Truck", back_populates="customer")

    __table_args__ = (
        Index("idx_customers_tenant_name", "tenant_id", "name"),
        Index("idx_customers_tenant_external_id", "tenant_id", "external_id"),
    )


class Truck(Base):
    """A vehicle, keyed by VIN within a tenant"""

    __tablename__ = "trucks"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    vin = Column(String(17), nullable=False)

    # Identity
    unit_number = Column(String(50), nullable=True)
    year = Column(Integer, nullable=True)
    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    license_plate = Column(String(20), nullable=True)

    # Live readings
    odometer_miles = Column(Integer, nullable=True)
    engine_hours = Column(Float, nullable=True)
    last_service_date = Column(Date, nullable=True)
    last_service_odometer = Column(Integer, nullable=True)

    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)

    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    customer = relationship("Customer", back_populates="trucks")
    work_orders = relationship("WorkOrder", back_populates="truck")
    maintenance_records = relationship("MaintenanceRecord", back_populates="truck")

    __table_args__ = (
        UniqueConstraint("tenant_id", "vin", name="uq_trucks_tenant_vin"),
    )


class WorkOrder(Base):
    """A committed work order with the identity snapshot read from its document"""

    __tablename__ = "work_orders"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    truck_id = Column(String(36), ForeignKey("trucks.id"), nullable=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)

    work_order_number = Column(String(100), nullable=True)
    work_order_date = Column(Date, nullable=True)
    status = Column(String(20), default=WorkOrderStatus.EXTRACTED.value, nullable=False)

    # Customer as printed on the document
    customer_name = Column(String(255), nullable=True)
    customer_id_ref = Column(String(100), nullable=True)
    customer_location = Column(String(255), nullable=True)

    # Reviewer-corrected narrative
    complaint = Column(Text, nullable=True)
    cause = Column(Text, nullable=True)
    correction = Column(Text, nullable=True)
    fault_codes = Column(JSON, default=list, nullable=False)

    # Extracted identity snapshot, independent of the truck's live fields
    extracted_vin = Column(String(17), nullable=True)
    extracted_unit_number = Column(String(50), nullable=True)
    extracted_year = Column(Integer, nullable=True)
    extracted_make = Column(String(100), nullable=True)
    extracted_model = Column(String(100), nullable=True)
    extracted_odometer = Column(Integer, nullable=True)
    extracted_engine_hours = Column(Float, nullable=True)

    labor_hours = Column(Float, nullable=True)
    parts_listed = Column(JSON, default=list, nullable=False)
    truck_auto_created = Column(Boolean, default=False, nullable=False)
    extraction_confidence = Column(String(10), nullable=True)
    source_file_name = Column(String(255), nullable=True)
    idempotency_key = Column(String(64), nullable=True)
    # Digest of the reviewed payload the key was first committed with
    payload_digest = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)

    truck = relationship("Truck", back_populates="work_orders")
    customer = relationship("Customer")
    maintenance_records = relationship("MaintenanceRecord", back_populates="work_order")

    __table_args__ = (
        UniqueConstraint("tenant_id", "idempotency_key", name="uq_work_orders_tenant_idempotency"),
        Index("idx_work_orders_tenant_status", "tenant_id", "status"),
        Index("idx_work_orders_tenant_created", "tenant_id", "created_at"),
    )


class MaintenanceRecord(Base):
    """A service history entry; always attached to a truck"""

    __tablename__ = "maintenance_records"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    truck_id = Column(String(36), ForeignKey("trucks.id"), nullable=False)
    work_order_id = Column(String(36), ForeignKey("work_orders.id"), nullable=True)

    service_category = Column(String(30), nullable=False)
    service_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    service_date = Column(Date, nullable=True)
    odometer_at_service = Column(Integer, nullable=True)
    engine_hours_at_service = Column(Float, nullable=True)
    labor_hours = Column(Float, nullable=True)
    parts_used = Column(JSON, default=list, nullable=False)
    source = Column(String(20), default=MaintenanceSource.WORK_ORDER.value, nullable=False)

    created_at = Column(DateTime, default=_now, nullable=False)

    truck = relationship("Truck", back_populates="maintenance_records")
    work_order = relationship("WorkOrder", back_populates="maintenance_records")

    __table_args__ = (
        UniqueConstraint("work_order_id", "service_category", name="uq_maintenance_work_order_category"),
        Index("idx_maintenance_tenant_truck", "tenant_id", "truck_id"),
    )
