"""Field normalization for externally sourced billing data.

Converts loosely formatted values from CSV exports and API payloads into
canonical values. None of these functions raise on bad input; they fall
back to a neutral value instead.
"""

import logging
import math
import re
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"

# "Canadian Dollar - CAD", "Euro – EUR", "Pound Sterling — GBP"
_CURRENCY_LABEL = re.compile(r"[-–—]\s*([A-Z]{3})\s*$")

# Missing date parts resolve to the first month / first day
_DATE_DEFAULT = datetime(2000, 1, 1)


def parse_amount(raw: str | float | int | None) -> float:
    """Parse an amount that may carry thousands separators.

    Args:
        raw: Value such as "1,800.50", 42.0 or None

    Returns:
        Parsed float, or 0.0 for empty, missing or non-numeric input
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, int | float):
        value = float(raw)
    else:
        cleaned = raw.replace(",", "").strip()
        if not cleaned:
            return 0.0
        try:
            value = float(cleaned)
        except ValueError:
            logger.debug(f"Could not parse amount: {raw!r}")
            return 0.0
    return value if math.isfinite(value) else 0.0


def parse_currency_code(raw: str | None) -> str:
    """Extract an ISO 4217 code from a bare code or a compound label.

    Args:
        raw: "CAD", "Canadian Dollar - CAD", or empty

    Returns:
        The trailing three-letter code when present, otherwise the first
        10 characters of the trimmed input, or "USD" for empty input
    """
    if not raw or not raw.strip():
        return DEFAULT_CURRENCY
    match = _CURRENCY_LABEL.search(raw)
    if match:
        return match.group(1)
    return raw.strip()[:10]


def parse_iso_date(raw: str | None) -> str:
    """Parse a loosely formatted date into YYYY-MM-DD.

    Args:
        raw: "2024-01-15", "01/15/2024", "Jan 15, 2024", ...

    Returns:
        ISO date string, or "" when empty or unparsable
    """
    if not raw or not raw.strip():
        return ""
    try:
        return date_parser.parse(raw.strip(), default=_DATE_DEFAULT).date().isoformat()
    except (ValueError, OverflowError):
        logger.debug(f"Could not parse date: {raw!r}")
        return ""


def add_days(iso_date: str, offset_days: int) -> str:
    """Add a whole-day offset to an ISO date.

    Returns:
        Shifted ISO date, or "" if the input is empty or invalid
    """
    if not iso_date:
        return ""
    try:
        return (date.fromisoformat(iso_date) + timedelta(days=offset_days)).isoformat()
    except (ValueError, OverflowError):
        return ""


def round2(value: float | Decimal) -> float:
    """Round half away from zero to 2 decimal places."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(repr(value))
        quantized = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return 0.0
    return float(quantized)


def tax_percent(tax: float, subtotal: float) -> float:
    """Derive a tax percentage from absolute tax and subtotal amounts.

    Computed in decimal arithmetic so that e.g. 75 / 1000 gives exactly 7.5.

    Returns:
        round2(tax / subtotal * 100), or 0.0 when subtotal is not positive
    """
    if subtotal <= 0:
        return 0.0
    return round2(Decimal(repr(tax)) / Decimal(repr(subtotal)) * 100)
