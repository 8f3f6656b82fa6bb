"""Hashing helpers for document provenance and commit idempotency."""

import hashlib
import json
import logging
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


def calculate_bytes_sha256(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def payload_digest(payload: Mapping[str, Any]) -> str:
    """SHA-256 of a JSON-serializable mapping, independent of key order."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def commit_idempotency_key(
    document_sha256: str, tenant_id: str, reviewed_digest: Optional[str] = None
) -> str:
    """Derive the commit idempotency key for a document within a tenant.

    The same document committed for two tenants yields two different keys.
    With ``reviewed_digest`` the key also changes when a reviewer corrects
    the record, so a corrected commit is not mistaken for a retry.
    """
    material = f"{tenant_id}:{document_sha256}"
    if reviewed_digest:
        material = f"{material}:{reviewed_digest}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:40]
