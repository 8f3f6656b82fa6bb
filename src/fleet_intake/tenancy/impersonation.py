"""Administrative impersonation session state.

A privileged operator (``master_admin``) may act within another user's tenant
for support purposes. The session holds an optional active tenant override and
the impersonated user's record; both expire after a short TTL.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fleet_intake.config.settings import get_settings
from fleet_intake.errors import ImpersonationError

logger = logging.getLogger(__name__)

MASTER_ADMIN_ROLE = "master_admin"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CallerIdentity:
    """The authenticated caller performing an operation."""

    user_id: str
    home_tenant_id: Optional[str] = None
    role: str = "user"

    @property
    def is_master_admin(self) -> bool:
        return self.role == MASTER_ADMIN_ROLE


@dataclass(frozen=True)
class ImpersonatedUser:
    """Snapshot of the user being impersonated."""

    user_id: str
    tenant_id: Optional[str]
    role: str = "user"
    full_name: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class ImpersonationSession:
    """Short-lived impersonation state for one operator session.

    Attributes:
        active_tenant_id: Explicit tenant override set when impersonation starts.
        impersonated_user: Record of the impersonated user, if any.
        started_at: When impersonation started.
        expires_at: When the override stops being honored.
    """

    active_tenant_id: Optional[str] = None
    impersonated_user: Optional[ImpersonatedUser] = None
    started_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.active_tenant_id is None and self.impersonated_user is None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utcnow()) >= self.expires_at

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return not self.is_empty and not self.is_expired(now)


def _refusal_reason(actor: CallerIdentity, target: ImpersonatedUser) -> Optional[str]:
    if not actor.is_master_admin:
        return "Only master admins can impersonate users"
    if target.user_id == actor.user_id:
        return "Cannot impersonate yourself"
    if target.role == MASTER_ADMIN_ROLE:
        return "Cannot impersonate master admin users"
    return None


def can_impersonate(actor: CallerIdentity, target: ImpersonatedUser) -> bool:
    """Check whether ``actor`` may impersonate ``target``."""
    return _refusal_reason(actor, target) is None


def start_impersonation(
    actor: CallerIdentity,
    target: ImpersonatedUser,
    ttl_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ImpersonationSession:
    """Create an impersonation session for ``target``.

    ``ttl_minutes`` defaults to the ``impersonation_ttl_minutes`` setting.

    Raises:
        ImpersonationError: If the actor is not a master admin, targets
            themselves, or targets another master admin.
    """
    reason = _refusal_reason(actor, target)
    if reason:
        raise ImpersonationError(reason)

    if ttl_minutes is None:
        ttl_minutes = get_settings().impersonation_ttl_minutes
    started = now or utcnow()
    session = ImpersonationSession(
        active_tenant_id=target.tenant_id,
        impersonated_user=target,
        started_at=started,
        expires_at=started + timedelta(minutes=ttl_minutes),
    )
    logger.info(
        f"User {actor.user_id} started impersonating {target.user_id} "
        f"(tenant={target.tenant_id})"
    )
    return session


def stop_impersonation() -> ImpersonationSession:
    """Return an empty session, clearing override and user record."""
    return ImpersonationSession()
