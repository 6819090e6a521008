from __future__ import annotations

from datetime import date, datetime

from ..core.constants import DATE_FORMAT, MONTH_FORMAT, TIME_FORMAT
from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(str(value), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid date {value!r} (expected YYYY-MM-DD)")


def normalize_date(value: "str | date") -> str:
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    return parse_iso_date(value).strftime(DATE_FORMAT)


def time_to_minutes(value: str) -> int:
    """Minutes since midnight for an ``HH:MM`` string."""
    try:
        parsed = datetime.strptime(str(value).strip(), TIME_FORMAT)
    except ValueError:
        raise ValidationError(f"Invalid time {value!r} (expected HH:MM)")
    return parsed.hour * 60 + parsed.minute


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def validate_month(value: str | None) -> str | None:
    """Accept ``YYYY-MM`` or empty; empty is stored as None."""
    if value is None or not str(value).strip():
        return None
    v = str(value).strip()
    try:
        datetime.strptime(v, MONTH_FORMAT)
    except ValueError:
        raise ValidationError(f"Invalid month {value!r} (expected YYYY-MM)")
    # strptime accepts "2025-1"; the expiry sweep compares strings, so insist on zero padding.
    if len(v) != 7:
        raise ValidationError(f"Invalid month {value!r} (expected YYYY-MM)")
    return v


def current_month(today: date | None = None) -> str:
    today = today or now_local().date()
    return today.strftime(MONTH_FORMAT)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
