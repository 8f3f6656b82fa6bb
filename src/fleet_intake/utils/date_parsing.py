"""Date parsing for service dates printed on work orders.

Shop documents are US-formatted, so numeric dates are read as MM/DD/YYYY.
"""

import re
from datetime import date, datetime
from typing import Any, Optional

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

# ISO: 2024-03-18 (optionally followed by T or space + time)
_RE_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T\s].*)?$")

# Numeric: MM/DD/YYYY, MM-DD-YY, MM.DD.YYYY
_RE_NUMERIC = re.compile(r"^(\d{1,2})[./\-](\d{1,2})[./\-](\d{2,4})(?:\s.*)?$")

# Named month: "Mar 18, 2024", "March 18 2024"
_RE_NAMED_MONTH = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})$")


def _expand_year(year: int) -> int:
    """Expand 2-digit year to 4-digit (assume 2000-2099)."""
    if year < 100:
        return 2000 + year
    return year


def _build(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(_expand_year(year), month, day)
    except ValueError:
        return None


def parse_service_date(value: Any) -> Optional[date]:
    """Parse a work order date into a ``date``.

    Returns:
        The parsed date, or None if the value is empty or unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    m = _RE_ISO.match(text)
    if m:
        return _build(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _RE_NUMERIC.match(text)
    if m:
        return _build(int(m.group(3)), int(m.group(1)), int(m.group(2)))

    m = _RE_NAMED_MONTH.match(text)
    if m:
        month = _MONTHS.get(m.group(1).lower()[:4]) or _MONTHS.get(m.group(1).lower()[:3])
        if month:
            return _build(int(m.group(3)), month, int(m.group(2)))

    return None
