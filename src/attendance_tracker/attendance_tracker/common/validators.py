from __future__ import annotations

from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError


def require_status(value: "str | AttendanceStatus") -> AttendanceStatus:
    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus(str(value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in AttendanceStatus)
        raise ValidationError(f"Unknown attendance status {value!r} (expected one of: {allowed})")


def require_non_empty(value: str | None, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_percentage(value: float, field_name: str) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if v < 0 or v > 100:
        raise ValidationError(f"{field_name} must be between 0 and 100")
    return v


def require_int_range(value: int, field_name: str, low: int, high: int) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if v < low or v > high:
        raise ValidationError(f"{field_name} must be between {low} and {high}")
    return v


def require_non_negative(value: int, field_name: str) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if v < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return v
