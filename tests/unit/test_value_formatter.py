"""Tests for stat value formatting (number, currency, percentage, duration, relative time)."""

from datetime import UTC, datetime

import pytest

from tilestats.application.services.value_formatter import (
    ValueFormatter,
    format_duration,
    format_relative_time,
    format_value,
)
from tilestats.domain.enums import StatFormat

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1234567, "1,234,567"),
        (1234.5, "1,234.5"),
        (0, "0"),
        (12.0, "12"),
        (3.14159, "3.14"),
        ("42", "42"),
    ],
)
def test_format_number(value: object, expected: str) -> None:
    assert format_value(value, "number") == expected


def test_format_currency_default_symbol() -> None:
    assert format_value(1234.56, StatFormat.CURRENCY) == "$1,234.56"


def test_format_currency_negative_puts_sign_before_symbol() -> None:
    assert format_value(-12, "currency") == "-$12.00"


def test_format_currency_uses_configured_symbol() -> None:
    formatter = ValueFormatter(currency_symbol="€")
    assert formatter.format(99.5, "currency") == "€99.50"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0.1234, "12.34%"),
        (0.5, "50.0%"),
        (1, "100.0%"),
    ],
)
def test_format_percentage_treats_value_as_fraction(value: float, expected: str) -> None:
    assert format_value(value, "percentage") == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (3661, "1h 1m 1s"),
        (61, "1m 1s"),
        (0, "0s"),
        (45, "45s"),
        (3600, "1h 0m 0s"),
        (90061, "1d 1h 1m 1s"),
    ],
)
def test_format_duration(seconds: int, expected: str) -> None:
    assert format_duration(seconds) == expected


@pytest.mark.parametrize(
    ("timestamp", "expected"),
    [
        ("2024-06-15T11:59:50Z", "just now"),
        ("2024-06-10T12:00:00Z", "5 days ago"),
        ("2024-06-15T11:59:00Z", "1 minute ago"),
        ("2024-06-15T15:00:00Z", "in 3 hours"),
        ("2023-06-01T00:00:00Z", "1 year ago"),
        ("2024-06-01T12:00:00Z", "2 weeks ago"),
    ],
)
def test_format_relative_time(timestamp: str, expected: str) -> None:
    assert format_relative_time(timestamp, NOW) == expected


def test_formatter_uses_injected_clock_for_relative_time() -> None:
    formatter = ValueFormatter(clock=lambda: NOW)
    assert formatter.format("2024-06-14T12:00:00+00:00", "relative_time") == "1 day ago"


def test_none_renders_as_not_available() -> None:
    assert format_value(None, "currency") == "N/A"


def test_unknown_tag_returns_string_value() -> None:
    assert format_value(1234, "sparkline") == "1234"


def test_unparseable_value_never_raises() -> None:
    assert format_value("not-a-number", "currency") == "not-a-number"
    assert format_value("yesterday-ish", "relative_time") == "yesterday-ish"
    assert format_value(True, "number") == "True"
