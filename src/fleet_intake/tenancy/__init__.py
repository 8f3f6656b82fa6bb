"""Tenant scope resolution and impersonation."""

from fleet_intake.tenancy.context import (
    DEFAULT_STRATEGIES,
    ResolutionInput,
    TenantContext,
    TenantScope,
    require_scope,
)
from fleet_intake.tenancy.impersonation import (
    MASTER_ADMIN_ROLE,
    CallerIdentity,
    ImpersonatedUser,
    ImpersonationSession,
    can_impersonate,
    start_impersonation,
    stop_impersonation,
)

__all__ = [
    "DEFAULT_STRATEGIES",
    "MASTER_ADMIN_ROLE",
    "CallerIdentity",
    "ImpersonatedUser",
    "ImpersonationSession",
    "ResolutionInput",
    "TenantContext",
    "TenantScope",
    "can_impersonate",
    "require_scope",
    "start_impersonation",
    "stop_impersonation",
]
