"""Lenient number parsing for values typed or extracted from work orders."""

import re
from typing import Any, Optional

# Trailing unit suffixes seen on odometer, engine hour and labor fields
UNIT_PATTERNS = [
    r"\s*(miles|mile|mi)\.?$",
    r"\s*(kilometers|kilometres|km)\.?$",
    r"\s*(hours|hour|hrs|hr|h)\.?$",
]


def parse_lenient_number(value: Any) -> Optional[float]:
    """Parse a number that may contain units or thousand separators.

    Handles:
    - Unit suffixes: "125,000 mi" -> 125000, "1.5 hrs" -> 1.5
    - Thousand separators: "125,000" -> 125000, "1'000" -> 1000, "12 345" -> 12345
    - European decimal comma: "1,5" -> 1.5, "1.234,5" -> 1234.5

    Args:
        value: The value to parse (string, int, float, or None)

    Returns:
        Parsed float, or None if the value is empty or not a number.
        Never returns 0 for unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if value != value:  # NaN
            return None
        return float(value)

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    for pattern in UNIT_PATTERNS:
        text = re.sub(pattern, "", text, flags=re.IGNORECASE)

    text = text.replace("'", "").strip()
    if re.fullmatch(r"\d{1,3}( \d{3})+", text):
        text = text.replace(" ", "")
    if not text:
        return None

    has_comma = "," in text
    has_dot = "." in text

    if has_comma and has_dot:
        # The separator that appears last is the decimal separator
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif has_comma:
        groups = text.split(",")
        if all(len(g) == 3 and g.isdigit() for g in groups[1:]) and groups[0].lstrip("-").isdigit():
            # "125,000" / "1,250,000"
            text = text.replace(",", "")
        else:
            text = text.replace(",", ".")

    try:
        return float(text)
    except ValueError:
        return None


def parse_lenient_int(value: Any) -> Optional[int]:
    """Parse a whole number; fractional input is rounded, invalid input is None."""
    number = parse_lenient_number(value)
    if number is None:
        return None
    return int(round(number))
