"""Review-stage validation and normalization of candidate work orders.

The rules are pure and run continuously while a reviewer edits a candidate
(``review``) and once more as the final gate before commit (``finalize``).
Only the VIN is mandatory; partial documents stay committable.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from fleet_intake.errors import ValidationError
from fleet_intake.schemas.work_order import (
    VIN_LENGTH,
    CandidateWorkOrder,
    ConfidenceLabel,
    ReviewedWorkOrder,
    ReviewIssue,
    ReviewReport,
)
from fleet_intake.utils.date_parsing import parse_service_date
from fleet_intake.utils.number_parsing import parse_lenient_int, parse_lenient_number

logger = logging.getLogger(__name__)

MIN_MODEL_YEAR = 1900
MAX_MODEL_YEAR = 2100


def normalize_text(value: Any) -> Optional[str]:
    """Strip text; blank values become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_vin(value: Any) -> Optional[str]:
    """Uppercase a VIN and drop whitespace; blank values become None."""
    text = normalize_text(value)
    if text is None:
        return None
    return re.sub(r"\s+", "", text).upper()


def normalize_fault_codes(value: Any) -> List[str]:
    """Normalize free-form fault codes into a trimmed, uppercased, deduplicated list.

    Accepts a comma-separated string or a list of strings. Order of first
    occurrence is preserved.
    """
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        raw = []
        for item in value:
            if item is None:
                continue
            raw.extend(str(item).split(","))
    else:
        raw = [str(value)]

    codes: List[str] = []
    seen = set()
    for item in raw:
        code = item.strip().upper()
        if code and code not in seen:
            seen.add(code)
            codes.append(code)
    return codes


def _non_negative(
    value: Any, field: str, issues: List[ReviewIssue], integer: bool = False
) -> Optional[Union[int, float]]:
    parsed = parse_lenient_int(value) if integer else parse_lenient_number(value)
    if parsed is None:
        if normalize_text(value) is not None:
            issues.append(ReviewIssue(
                field=field,
                message=f"Could not read a number from {value!r}; left unset",
                blocking=False,
            ))
        return None
    if parsed < 0:
        issues.append(ReviewIssue(
            field=field, message="Negative value ignored; left unset", blocking=False
        ))
        return None
    return parsed


class ReviewValidator:
    """Applies review rules to a candidate work order."""

    def review(self, candidate: Union[CandidateWorkOrder, Dict[str, Any]]) -> ReviewReport:
        """Normalize a candidate and report issues without raising.

        A payload that is not a candidate at all (wrong types, unknown
        confidence label) comes back as blocking issues with nothing normalized.
        """
        try:
            candidate = self._coerce(candidate)
        except ValidationError as e:
            return ReviewReport(issues=e.issues)
        normalized, issues = self._normalize(candidate)
        return ReviewReport(
            normalized=normalized,
            issues=issues,
            confidence=candidate.confidence,
        )

    def finalize(self, candidate: Union[CandidateWorkOrder, Dict[str, Any]]) -> ReviewedWorkOrder:
        """Produce the commit-ready record.

        Raises:
            ValidationError: If any blocking issue remains (e.g. VIN length).
        """
        candidate = self._coerce(candidate)
        normalized, issues = self._normalize(candidate)
        blocking = [issue for issue in issues if issue.blocking]
        if blocking:
            logger.info(f"Commit blocked for {candidate.source_file_name}: {len(blocking)} issue(s)")
            raise ValidationError(blocking)

        try:
            return ReviewedWorkOrder.model_validate(normalized)
        except PydanticValidationError as e:
            raise ValidationError([
                ReviewIssue(
                    field=".".join(str(part) for part in error.get("loc", ())),
                    message=error.get("msg", "Invalid value"),
                )
                for error in e.errors()
            ]) from e

    def _coerce(self, candidate: Union[CandidateWorkOrder, Dict[str, Any]]) -> CandidateWorkOrder:
        if isinstance(candidate, CandidateWorkOrder):
            return candidate
        try:
            return CandidateWorkOrder.model_validate(candidate)
        except PydanticValidationError as e:
            raise ValidationError([
                ReviewIssue(
                    field=".".join(str(part) for part in error.get("loc", ())),
                    message=error.get("msg", "Invalid value"),
                )
                for error in e.errors()
            ]) from e

    def _normalize(self, candidate: CandidateWorkOrder) -> Tuple[Dict[str, Any], List[ReviewIssue]]:
        issues: List[ReviewIssue] = []

        vin = normalize_vin(candidate.truck.vin)
        if vin is None:
            issues.append(ReviewIssue(field="truck.vin", message="VIN is required"))
        elif len(vin) != VIN_LENGTH:
            issues.append(ReviewIssue(
                field="truck.vin",
                message=f"VIN must be exactly {VIN_LENGTH} characters (got {len(vin)})",
            ))

        year = _non_negative(candidate.truck.year, "truck.year", issues, integer=True)
        if year is not None and not (MIN_MODEL_YEAR <= year <= MAX_MODEL_YEAR):
            issues.append(ReviewIssue(
                field="truck.year", message=f"Implausible model year {year}; left unset", blocking=False
            ))
            year = None

        truck = {
            "vin": vin,
            "unit_number": normalize_text(candidate.truck.unit_number),
            "year": year,
            "make": normalize_text(candidate.truck.make),
            "model": normalize_text(candidate.truck.model),
            "odometer": _non_negative(candidate.truck.odometer, "truck.odometer", issues, integer=True),
            "engine_hours": _non_negative(candidate.truck.engine_hours, "truck.engine_hours", issues),
            "license_plate": normalize_text(candidate.truck.license_plate),
        }

        raw_date = candidate.work_order.date
        service_date = parse_service_date(raw_date)
        if service_date is None and normalize_text(raw_date) is not None:
            issues.append(ReviewIssue(
                field="work_order.date",
                message=f"Unrecognized date {raw_date!r}; left unset",
                blocking=False,
            ))

        work_order = {
            "work_order_number": normalize_text(candidate.work_order.work_order_number),
            "date": service_date,
            "complaint": normalize_text(candidate.work_order.complaint),
            "cause": normalize_text(candidate.work_order.cause),
            "correction": normalize_text(candidate.work_order.correction),
            "fault_codes": normalize_fault_codes(candidate.work_order.fault_codes),
        }

        customer = {
            "name": normalize_text(candidate.customer.name),
            "id_ref": normalize_text(candidate.customer.id_ref),
            "location": normalize_text(candidate.customer.location),
        }

        parts = []
        for index, part in enumerate(candidate.parts_listed):
            description = normalize_text(part.description)
            part_number = normalize_text(part.part_number)
            if description is None and part_number is None:
                continue
            parts.append({
                "part_number": part_number,
                "description": description,
                "quantity": _non_negative(part.quantity, f"parts_listed.{index}.quantity", issues),
                "unit_price": _non_negative(part.unit_price, f"parts_listed.{index}.unit_price", issues),
            })

        if candidate.confidence == ConfidenceLabel.LOW:
            issues.append(ReviewIssue(
                field="confidence",
                message="Extraction confidence is low; verify every field against the document",
                blocking=False,
            ))

        normalized = {
            "truck": truck,
            "customer": customer,
            "work_order": work_order,
            "service_categories": candidate.service_categories.model_dump(),
            "labor_hours": _non_negative(candidate.labor_hours, "labor_hours", issues),
            "parts_listed": parts,
            "confidence": candidate.confidence.value,
            "source_file_name": normalize_text(candidate.source_file_name),
            "document_sha256": candidate.document_sha256,
        }
        return normalized, issues
