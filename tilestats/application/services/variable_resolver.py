"""Placeholder substitution for query specifications and conditions.

Tokens are strings starting with '$'. Built-in tokens resolve from the
request context (organization, viewer, reference time, time range);
'$filter.<key>' and '$var.<name>' resolve from the filter-by pairs and
request variables. Timestamps resolve to ISO-8601 UTC strings.

Unknown tokens pass through unchanged unless the resolver is strict, in
which case UnresolvedPlaceholderError is raised.
"""

from __future__ import annotations

import calendar
import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from tilestats.application.dtos.tile_stats import RequestContext
from tilestats.core.constants import PLACEHOLDER_PREFIX
from tilestats.domain.exceptions import UnresolvedPlaceholderError
from tilestats.shared.utils.datetime import to_iso_utc

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_RELATIVE_RANGE_RE = re.compile(r"^(\d{1,4})([hdwm])$")


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _start_of_week(now: datetime) -> datetime:
    return _start_of_day(now) - timedelta(days=now.weekday())


def _start_of_month(now: datetime) -> datetime:
    return _start_of_day(now).replace(day=1)


def _start_of_quarter(now: datetime) -> datetime:
    first_month = 3 * ((now.month - 1) // 3) + 1
    return _start_of_month(now).replace(month=first_month)


def _start_of_year(now: datetime) -> datetime:
    return _start_of_month(now).replace(month=1)


def _months_back(now: datetime, months: int) -> datetime:
    total = now.year * 12 + (now.month - 1) - months
    year, month = divmod(total, 12)
    day = min(now.day, calendar.monthrange(year, month + 1)[1])
    return now.replace(year=year, month=month + 1, day=day)


_NAMED_RANGES: dict[str, Callable[[datetime], datetime]] = {
    "today": _start_of_day,
    "wtd": _start_of_week,
    "mtd": _start_of_month,
    "qtd": _start_of_quarter,
    "ytd": _start_of_year,
    "all": lambda now: _EPOCH,
}


def parse_time_range(time_range: str | None, now: datetime) -> datetime:
    """Return the start of a time range expression relative to now.

    Accepts 'today', 'wtd', 'mtd', 'qtd', 'ytd', 'all', and '<N>h', '<N>d',
    '<N>w', '<N>m' (hours, days, weeks, months). None or '' means 'all'.

    Raises:
        ValueError: If time_range is not a recognized expression.
    """
    if not time_range:
        return _EPOCH
    key = time_range.strip().lower()
    named = _NAMED_RANGES.get(key)
    if named is not None:
        return named(now)
    match = _RELATIVE_RANGE_RE.match(key)
    if not match:
        raise ValueError(f"Unrecognized time range: {time_range!r}")
    amount, unit = int(match.group(1)), match.group(2)
    if unit == "h":
        return now - timedelta(hours=amount)
    if unit == "d":
        return now - timedelta(days=amount)
    if unit == "w":
        return now - timedelta(weeks=amount)
    return _months_back(now, amount)


_BUILTIN_TOKENS: dict[str, Callable[[RequestContext], Any]] = {
    "now": lambda ctx: to_iso_utc(ctx.now),
    "today": lambda ctx: to_iso_utc(_start_of_day(ctx.now)),
    "start_of_day": lambda ctx: to_iso_utc(_start_of_day(ctx.now)),
    "start_of_week": lambda ctx: to_iso_utc(_start_of_week(ctx.now)),
    "start_of_month": lambda ctx: to_iso_utc(_start_of_month(ctx.now)),
    "start_of_quarter": lambda ctx: to_iso_utc(_start_of_quarter(ctx.now)),
    "start_of_year": lambda ctx: to_iso_utc(_start_of_year(ctx.now)),
    "time_range_start": lambda ctx: to_iso_utc(parse_time_range(ctx.time_range, ctx.now)),
    "time_range_end": lambda ctx: to_iso_utc(ctx.now),
    "organization_id": lambda ctx: ctx.organization_id,
    "user_id": lambda ctx: ctx.viewer.user_id,
}


class VariableResolver:
    """Substitute placeholder tokens with values derived from a RequestContext."""

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def is_placeholder(self, value: Any) -> bool:
        return (
            isinstance(value, str)
            and len(value) > len(PLACEHOLDER_PREFIX)
            and value.startswith(PLACEHOLDER_PREFIX)
        )

    def resolve(self, value: Any, context: RequestContext) -> Any:
        """Return value with placeholders substituted; lists resolve element-wise.

        Raises:
            UnresolvedPlaceholderError: In strict mode, for an unknown token.
        """
        if isinstance(value, list):
            return [self.resolve(item, context) for item in value]
        if not self.is_placeholder(value):
            return value
        name = value[len(PLACEHOLDER_PREFIX):]
        found, resolved = self._lookup(name, context)
        if found:
            return resolved
        if self.strict:
            raise UnresolvedPlaceholderError(value)
        return value

    def _lookup(self, name: str, context: RequestContext) -> tuple[bool, Any]:
        builtin = _BUILTIN_TOKENS.get(name)
        if builtin is not None:
            return True, builtin(context)
        namespace, _, key = name.partition(".")
        if namespace == "filter" and key in context.filters:
            return True, context.filters[key]
        if namespace == "var" and key in context.variables:
            return True, context.variables[key]
        return False, None
