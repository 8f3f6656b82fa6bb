"""
Pytest fixtures shared by the fleet_intake test suite.

Provides a temporary SQLite store with two seeded tenants, candidate and
reviewed work order factories, and a minimal text PDF builder.
"""

import copy
import os

import pytest
from sqlalchemy import func, select

from fleet_intake.config.settings import ENV_PREFIX, reset_settings_cache
from fleet_intake.review.validator import ReviewValidator
from fleet_intake.schemas.work_order import CandidateWorkOrder
from fleet_intake.storage.database import Database
from fleet_intake.storage.models import Tenant
from fleet_intake.tenancy.context import TenantScope

VIN = "1FTFW1ET1EKE12345"

_SECTIONS = ("truck", "customer", "work_order", "service_categories")


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Drop FLEET_INTAKE_* variables and the settings cache around every test."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def database(tmp_path):
    """A fresh SQLite database with the schema created."""
    db = Database(f"sqlite:///{tmp_path / 'intake.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def tenants(database):
    with database.session_scope() as session:
        session.add_all([
            Tenant(id="T1", name="Tenant One Diesel"),
            Tenant(id="T2", name="Tenant Two Fleet"),
        ])
    return "T1", "T2"


@pytest.fixture
def scope_t1(tenants):
    return TenantScope(tenant_id="T1", resolved_by="home")


@pytest.fixture
def scope_t2(tenants):
    return TenantScope(tenant_id="T2", resolved_by="home")


@pytest.fixture
def make_candidate():
    """Factory for CandidateWorkOrder; section keyword arguments are merged."""

    def _make(**overrides) -> CandidateWorkOrder:
        data = {
            "truck": {"vin": VIN},
            "customer": {},
            "work_order": {},
            "service_categories": {},
        }
        for key, value in overrides.items():
            if key in _SECTIONS and isinstance(value, dict):
                data[key] = {**data[key], **copy.deepcopy(value)}
            else:
                data[key] = value
        return CandidateWorkOrder.model_validate(data)

    return _make


@pytest.fixture
def make_reviewed(make_candidate):
    """Factory for ReviewedWorkOrder going through the real review gate."""
    validator = ReviewValidator()

    def _make(**overrides):
        return validator.finalize(make_candidate(**overrides))

    return _make


@pytest.fixture
def count_rows(database):
    """Count rows of a model, optionally filtered by column values."""

    def _count(model, **filters) -> int:
        stmt = select(func.count()).select_from(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        with database.session_scope() as session:
            return session.execute(stmt).scalar_one()

    return _count


def build_text_pdf(pages) -> bytes:
    """Build a PDF whose pages each show one line of Helvetica text."""
    objects = []
    page_count = len(pages)
    kids = " ".join(f"{4 + 2 * i} 0 R" for i in range(page_count))
    objects.append("<< /Type /Catalog /Pages 2 0 R >>")
    objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>")
    objects.append("<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")
    for i, text in enumerate(pages):
        objects.append(
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {5 + 2 * i} 0 R >>"
        )
        stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET"
        objects.append(f"<< /Length {len(stream)} >>\nstream\n{stream}\nendstream")

    out = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1")
    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("latin-1")
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("latin-1")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")
    return out


@pytest.fixture
def make_pdf():
    return build_text_pdf
