"""Tenant scope resolution.

Resolution order (first successful wins):
1) explicit caller-supplied tenant id
2) active impersonation override held in session state
3) impersonated user's home tenant when an impersonation record exists
   without an explicit override
4) caller's own home tenant

Each rule is a pure lookup strategy; ``TenantContext`` runs them in order.
An expired impersonation session fails resolution instead of quietly falling
back to the operator's own tenant.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from fleet_intake.errors import NoTenantError
from fleet_intake.tenancy.impersonation import (
    CallerIdentity,
    ImpersonationSession,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantScope:
    """A resolved tenant plus an optional impersonation marker."""

    tenant_id: str
    impersonating: bool = False
    impersonated_user_id: Optional[str] = None
    resolved_by: str = "explicit"


@dataclass(frozen=True)
class ResolutionInput:
    """Everything a strategy may look at."""

    caller: Optional[CallerIdentity]
    session: Optional[ImpersonationSession]
    explicit_tenant_id: Optional[str]
    now: datetime

    @property
    def active_session(self) -> Optional[ImpersonationSession]:
        if self.session is None or not self.session.is_active(self.now):
            return None
        return self.session


ResolutionStrategy = Callable[[ResolutionInput], Optional[TenantScope]]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _marker(inp: ResolutionInput) -> dict:
    session = inp.active_session
    if session is None:
        return {"impersonating": False, "impersonated_user_id": None}
    user = session.impersonated_user
    return {
        "impersonating": True,
        "impersonated_user_id": user.user_id if user else None,
    }


def explicit_tenant(inp: ResolutionInput) -> Optional[TenantScope]:
    tenant_id = _clean(inp.explicit_tenant_id)
    if tenant_id is None:
        return None
    return TenantScope(tenant_id=tenant_id, resolved_by="explicit", **_marker(inp))


def expired_session_guard(inp: ResolutionInput) -> Optional[TenantScope]:
    """Refuse to resolve while an impersonation session is stale."""
    session = inp.session
    if session is not None and not session.is_empty and session.is_expired(inp.now):
        raise NoTenantError(
            "Impersonation session expired; stop or restart impersonation"
        )
    return None


def session_override(inp: ResolutionInput) -> Optional[TenantScope]:
    session = inp.active_session
    if session is None:
        return None
    tenant_id = _clean(session.active_tenant_id)
    if tenant_id is None:
        return None
    return TenantScope(tenant_id=tenant_id, resolved_by="impersonation_override", **_marker(inp))


def impersonated_user_home(inp: ResolutionInput) -> Optional[TenantScope]:
    session = inp.active_session
    if session is None or session.impersonated_user is None:
        return None
    tenant_id = _clean(session.impersonated_user.tenant_id)
    if tenant_id is None:
        return None
    return TenantScope(tenant_id=tenant_id, resolved_by="impersonated_user", **_marker(inp))


def caller_home(inp: ResolutionInput) -> Optional[TenantScope]:
    if inp.caller is None:
        return None
    tenant_id = _clean(inp.caller.home_tenant_id)
    if tenant_id is None:
        return None
    return TenantScope(tenant_id=tenant_id, resolved_by="home", **_marker(inp))


DEFAULT_STRATEGIES: Sequence[ResolutionStrategy] = (
    explicit_tenant,
    expired_session_guard,
    session_override,
    impersonated_user_home,
    caller_home,
)


class TenantContext:
    """Resolves the tenant an operation applies to.

    Nothing is cached: each ``resolve()`` re-reads the session so a switch of
    impersonation target is picked up immediately.
    """

    def __init__(
        self,
        caller: Optional[CallerIdentity] = None,
        session: Optional[ImpersonationSession] = None,
        explicit_tenant_id: Optional[str] = None,
        strategies: Sequence[ResolutionStrategy] = DEFAULT_STRATEGIES,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.caller = caller
        self.session = session
        self.explicit_tenant_id = explicit_tenant_id
        self.strategies = tuple(strategies)
        self.clock = clock

    def resolve(self) -> TenantScope:
        """Resolve the tenant scope.

        Raises:
            NoTenantError: If no strategy yields a tenant.
        """
        inp = ResolutionInput(
            caller=self.caller,
            session=self.session,
            explicit_tenant_id=self.explicit_tenant_id,
            now=self.clock(),
        )
        for strategy in self.strategies:
            scope = strategy(inp)
            if scope is not None:
                logger.debug(f"Resolved tenant {scope.tenant_id} via {scope.resolved_by}")
                return scope
        raise NoTenantError("Tenant could not be resolved for this operation")


def require_scope(scope: Optional[TenantScope]) -> TenantScope:
    """Reject a missing or empty scope before any I/O happens."""
    if scope is None or not _clean(getattr(scope, "tenant_id", None)):
        raise NoTenantError("Operation requires a resolved tenant scope")
    return scope
