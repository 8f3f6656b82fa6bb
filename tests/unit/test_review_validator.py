"""Unit tests for the review validator."""

from datetime import date

import pytest

from fleet_intake.errors import ValidationError
from fleet_intake.review import ReviewValidator, normalize_fault_codes, normalize_vin
from fleet_intake.schemas.work_order import ReviewedWorkOrder

VIN = "1FTFW1ET1EKE12345"


@pytest.fixture
def validator():
    return ReviewValidator()


class TestNormalizers:
    def test_vin_uppercased_and_compacted(self):
        assert normalize_vin(" 1ftfw1et1eke 12345 ") == VIN

    def test_blank_vin(self):
        assert normalize_vin("   ") is None

    def test_fault_codes_from_string(self):
        assert normalize_fault_codes("spn 3251, p0420 ,SPN 3251,") == ["SPN 3251", "P0420"]

    def test_fault_codes_from_list(self):
        assert normalize_fault_codes(["p0420", None, "a, b"]) == ["P0420", "A", "B"]

    def test_fault_codes_none(self):
        assert normalize_fault_codes(None) == []


class TestReview:
    def test_missing_vin_is_blocking(self, validator, make_candidate):
        report = validator.review(make_candidate(truck={"vin": None}))

        assert not report.commit_ready
        assert [i.field for i in report.issues if i.blocking] == ["truck.vin"]

    def test_wrong_length_vin_is_blocking(self, validator, make_candidate):
        report = validator.review(make_candidate(truck={"vin": "1FTFW1ET1EKE1234"}))

        blocking = [i for i in report.issues if i.blocking]
        assert len(blocking) == 1
        assert "got 16" in blocking[0].message

    def test_review_never_raises_on_bad_values(self, validator, make_candidate):
        report = validator.review(make_candidate(
            truck={"year": "1850", "odometer": "lots"},
            work_order={"date": "someday"},
            labor_hours="-2",
        ))

        assert report.commit_ready
        fields = {i.field for i in report.issues}
        assert {"truck.year", "truck.odometer", "work_order.date", "labor_hours"} <= fields
        assert report.normalized["truck"]["year"] is None
        assert report.normalized["truck"]["odometer"] is None
        assert report.normalized["labor_hours"] is None

    def test_low_confidence_warns(self, validator, make_candidate):
        report = validator.review(make_candidate(confidence="low"))

        assert report.commit_ready
        assert any(i.field == "confidence" and not i.blocking for i in report.issues)

    def test_accepts_plain_dict(self, validator):
        report = validator.review({"truck": {"vin": VIN.lower()}})

        assert report.normalized["truck"]["vin"] == VIN

    def test_malformed_dict_reported_as_blocking(self, validator):
        report = validator.review({"truck": {"vin": VIN}, "confidence": "HIGH "})

        assert not report.commit_ready
        assert report.normalized == {}
        assert [issue.field for issue in report.issues] == ["confidence"]
        assert report.issues[0].blocking

    def test_finalize_still_raises_on_malformed_dict(self, validator):
        with pytest.raises(ValidationError):
            validator.finalize({"truck": {"vin": VIN}, "confidence": "HIGH "})


class TestFinalize:
    def test_normalizes_commit_ready_record(self, validator, make_candidate):
        reviewed = validator.finalize(make_candidate(
            truck={"vin": VIN.lower(), "year": "2019", "odometer": "125,000 mi", "make": "  Freightliner "},
            customer={"name": " ACME Logistics ", "location": "Dallas, TX"},
            work_order={"date": "03/18/2024", "fault_codes": "p0420, p0420", "complaint": "  "},
            service_categories={"brakes": "yes"},
            labor_hours="1.5 hrs",
            parts_listed=[
                {"part_number": "BP-100", "description": "Brake pads", "quantity": "2"},
                {"part_number": " ", "description": None},
            ],
        ))

        assert isinstance(reviewed, ReviewedWorkOrder)
        assert reviewed.truck.vin == VIN
        assert reviewed.truck.year == 2019
        assert reviewed.truck.odometer == 125000
        assert reviewed.truck.make == "Freightliner"
        assert reviewed.customer.name == "ACME Logistics"
        assert reviewed.work_order.date == date(2024, 3, 18)
        assert reviewed.work_order.fault_codes == ["P0420"]
        assert reviewed.work_order.complaint is None
        assert reviewed.service_categories.flagged() == ["brakes"]
        assert reviewed.labor_hours == 1.5
        assert len(reviewed.parts_listed) == 1
        assert reviewed.parts_listed[0].quantity == 2.0

    def test_partial_document_is_committable(self, validator, make_candidate):
        reviewed = validator.finalize(make_candidate())

        assert reviewed.work_order.work_order_number is None
        assert reviewed.customer.name is None
        assert reviewed.labor_hours is None

    def test_blocking_issue_raises(self, validator, make_candidate):
        with pytest.raises(ValidationError) as excinfo:
            validator.finalize(make_candidate(truck={"vin": "SHORT"}))

        assert [i.field for i in excinfo.value.issues] == ["truck.vin"]
        assert excinfo.value.to_dict()["error_type"] == "validation_failed"

    def test_provenance_carried(self, validator, make_candidate):
        reviewed = validator.finalize(make_candidate(
            source_file_name="wo-1001.pdf", document_sha256="ab" * 32
        ))

        assert reviewed.source_file_name == "wo-1001.pdf"
        assert reviewed.document_sha256 == "ab" * 32
