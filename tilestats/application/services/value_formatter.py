"""Display formatting for stat values.

format_value() is pure and never raises. Conventions:

- number: thousands-grouped; decimals keep up to 2 places, trailing zeros trimmed.
- currency: thousands-grouped, exactly 2 decimals, symbol prefix, sign before symbol.
- percentage: the raw value is a 0-1 fraction; it is multiplied by 100 and
  shown with up to 2 decimals (at least 1).
- duration: seconds as 'Xd Yh Zm Ws' with leading zero units dropped.
- relative_time: ISO timestamp as a phrase relative to now ('5 days ago').

None renders as 'N/A'; an unknown tag or an unparseable value renders as str(value).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any

from tilestats.core.constants import MISSING_FORMATTED_VALUE
from tilestats.domain.enums import StatFormat
from tilestats.shared.utils.datetime import parse_datetime_utc, utc_now

logger = logging.getLogger(__name__)

_DURATION_UNITS = (("d", 86_400), ("h", 3_600), ("m", 60), ("s", 1))

_RELATIVE_UNITS = (
    ("year", 365 * 86_400),
    ("month", 30 * 86_400),
    ("week", 7 * 86_400),
    ("day", 86_400),
    ("hour", 3_600),
    ("minute", 60),
)

_JUST_NOW_SECONDS = 45


def _to_number(value: Any) -> float | int:
    if isinstance(value, bool):
        raise TypeError("boolean is not a stat number")
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
    raise TypeError(f"not a number: {value!r}")


def _trim_decimals(text: str, keep: int = 0) -> str:
    """Strip trailing zeros after the decimal point, keeping at least `keep` digits."""
    if "." not in text:
        return text
    whole, frac = text.split(".", 1)
    frac = frac.rstrip("0")
    if len(frac) < keep:
        frac = frac.ljust(keep, "0")
    return f"{whole}.{frac}" if frac else whole


def format_number(value: Any) -> str:
    number = _to_number(value)
    if isinstance(number, int):
        return f"{number:,}"
    if number.is_integer():
        return f"{int(number):,}"
    return _trim_decimals(f"{number:,.2f}")


def format_currency(value: Any, symbol: str = "$") -> str:
    number = _to_number(value)
    sign = "-" if number < 0 else ""
    return f"{sign}{symbol}{abs(number):,.2f}"


def format_percentage(value: Any) -> str:
    number = _to_number(value) * 100
    return f"{_trim_decimals(f'{number:,.2f}', keep=1)}%"


def format_duration(value: Any) -> str:
    seconds = int(round(_to_number(value)))
    sign = "-" if seconds < 0 else ""
    remaining = abs(seconds)
    parts: list[str] = []
    for suffix, size in _DURATION_UNITS:
        amount, remaining = divmod(remaining, size)
        if amount or parts:
            parts.append(f"{amount}{suffix}")
    if not parts:
        return "0s"
    return sign + " ".join(parts)


def format_relative_time(value: Any, now: datetime | None = None) -> str:
    moment = parse_datetime_utc(value)
    reference = now or utc_now()
    delta = (reference - moment).total_seconds()
    distance = abs(delta)
    if distance < _JUST_NOW_SECONDS:
        return "just now"
    for unit, size in _RELATIVE_UNITS:
        if distance >= size:
            amount = int(distance // size)
            break
    else:
        unit, amount = "minute", 1
    label = unit if amount == 1 else f"{unit}s"
    if delta >= 0:
        return f"{amount} {label} ago"
    return f"in {amount} {label}"


class ValueFormatter:
    """Bind formatting options (currency symbol, clock) once per service."""

    def __init__(
        self,
        currency_symbol: str = "$",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.currency_symbol = currency_symbol
        self.clock = clock

    def format(self, value: Any, format_tag: StatFormat | str | None) -> str:
        """Return the display string for value; never raises."""
        if value is None:
            return MISSING_FORMATTED_VALUE
        try:
            tag = StatFormat(format_tag) if format_tag is not None else StatFormat.NUMBER
        except ValueError:
            return str(value)
        try:
            if tag == StatFormat.NUMBER:
                return format_number(value)
            if tag == StatFormat.CURRENCY:
                return format_currency(value, self.currency_symbol)
            if tag == StatFormat.PERCENTAGE:
                return format_percentage(value)
            if tag == StatFormat.DURATION:
                return format_duration(value)
            return format_relative_time(value, self.clock())
        except (TypeError, ValueError, OverflowError) as e:
            logger.debug("Cannot format %r as %s: %s", value, tag.value, e)
            return str(value)


def format_value(value: Any, format_tag: StatFormat | str | None) -> str:
    """Format with default options ('$' currency, current time)."""
    return ValueFormatter().format(value, format_tag)
