"""Relational persistence for committed work orders."""

from fleet_intake.storage.database import Base, Database
from fleet_intake.storage.models import Customer, MaintenanceRecord, Tenant, Truck, WorkOrder
from fleet_intake.storage.repository import TenantRepository

__all__ = [
    "Base",
    "Customer",
    "Database",
    "MaintenanceRecord",
    "Tenant",
    "TenantRepository",
    "Truck",
    "WorkOrder",
]
