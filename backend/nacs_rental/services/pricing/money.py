"""
Money and rental-duration helpers
Decimal-safe price parsing/formatting and calendar-day arithmetic
"""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union
import logging
import re

import pytz

from nacs_rental.core.config import settings

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
WHOLE_UNIT = Decimal("1")

# Digit groups with optional thousands separators and an optional decimal part.
# Currency symbols, whitespace and unit suffixes such as "/day" are ignored.
_PRICE_PATTERN = re.compile(r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?|\.\d+")

DateLike = Union[date, datetime]


def to_decimal(value: Union[Decimal, int, float, str, None]) -> Decimal:
    """Coerce a numeric input into Decimal (floats go through str to avoid binary noise)"""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize_cents(amount: Decimal) -> Decimal:
    """Round to centavos, half up"""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def round_whole(amount: Decimal) -> Decimal:
    """Round to whole currency units, half up"""
    return amount.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def extract_price_value(raw: Union[str, int, float, Decimal, None]) -> Decimal:
    """
    Parse a human-entered price such as "₱ 2,500", "₱2,500/day" or "1234.50 PHP".

    Returns Decimal("0") when nothing numeric can be found. Never raises.
    """
    if raw is None:
        return Decimal("0")
    if isinstance(raw, (int, float, Decimal)):
        try:
            value = to_decimal(raw)
        except InvalidOperation:
            return Decimal("0")
        return value if value.is_finite() and value > 0 else Decimal("0")

    match = _PRICE_PATTERN.search(str(raw))
    if not match:
        logger.debug(f"Unparseable price string: {raw!r}")
        return Decimal("0")

    try:
        return Decimal(match.group(0).replace(",", ""))
    except InvalidOperation:
        logger.debug(f"Unparseable price string: {raw!r}")
        return Decimal("0")


def format_price(amount: Union[Decimal, int, float], symbol: Optional[str] = None) -> str:
    """
    Format an amount as whole-unit currency with thousands separators, e.g. "₱1,235".

    Rounding is ROUND_HALF_UP to the nearest whole unit.
    """
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    whole = round_whole(to_decimal(amount))
    sign = "-" if whole < 0 else ""
    return f"{sign}{symbol}{abs(int(whole)):,}"


def _calendar_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(pytz.timezone(settings.BUSINESS_TIMEZONE))
        return value.date()
    return value


def calendar_day_difference(end: DateLike, start: DateLike) -> int:
    """Whole calendar days from start to end, ignoring time of day (negative if end < start)"""
    return (_calendar_date(end) - _calendar_date(start)).days


def rental_duration(pickup: DateLike, return_: DateLike) -> int:
    """Billable rental days; same-day or inverted ranges bill as one day"""
    return max(1, calendar_day_difference(return_, pickup))


def savings_percentage(original: Decimal, final: Decimal) -> Decimal:
    """Percentage saved between two totals, 0 when the original is not positive"""
    original = to_decimal(original)
    if original <= 0:
        return Decimal("0")
    return (original - to_decimal(final)) / original * 100
