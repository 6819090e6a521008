from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..common.datetime_utils import validate_month
from ..common.identity import EntityId, classify_id
from ..common.validators import require_non_empty, require_non_negative, require_percentage
from ..core.constants import DEFAULT_REQUIRED_ATTENDANCE
from ..core.enums import Weekday


@dataclass(frozen=True)
class Subject:
    """Domain entity: a tracked course.

    ``initial_hours_held`` / ``initial_hours_attended`` are counts carried over
    from before per-slot tracking started. ``days_of_week`` is the legacy
    weekday list; new subjects describe their timetable with lecture slots.
    """

    id: str
    name: str
    initial_hours_held: int = 0
    initial_hours_attended: int = 0
    days_of_week: tuple[int, ...] = field(default_factory=tuple)
    required_attendance: float = DEFAULT_REQUIRED_ATTENDANCE
    start_month: Optional[str] = None
    end_month: Optional[str] = None

    @property
    def identity(self) -> EntityId:
        return classify_id(self.id)

    @property
    def days(self) -> list[str]:
        return [Weekday(d % 7).short_name for d in self.days_of_week]

    def validated(self) -> "Subject":
        """Return a normalized copy, raising ValidationError on bad fields."""

        start = validate_month(self.start_month)
        end = validate_month(self.end_month)
        return Subject(
            id=self.id,
            name=require_non_empty(self.name, "Subject name"),
            initial_hours_held=require_non_negative(self.initial_hours_held, "Initial hours held"),
            initial_hours_attended=require_non_negative(self.initial_hours_attended, "Initial hours attended"),
            days_of_week=tuple(sorted({int(d) % 7 for d in self.days_of_week})),
            required_attendance=require_percentage(self.required_attendance, "Required attendance"),
            start_month=start,
            end_month=end,
        )

    def is_expired(self, month: str) -> bool:
        # "YYYY-MM" strings order the same way as the months they name.
        return bool(self.end_month) and self.end_month < month  # type: ignore[operator]

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "initialHoursHeld": self.initial_hours_held,
            "initialHoursAttended": self.initial_hours_attended,
            "daysOfWeek": list(self.days_of_week),
            "requiredAttendance": self.required_attendance,
            "startMonth": self.start_month,
            "endMonth": self.end_month,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Subject":
        held = data.get("initialHoursHeld", data.get("classesHeld", 0))
        attended = data.get("initialHoursAttended", data.get("classesAttended", 0))
        required = data.get("requiredAttendance")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            initial_hours_held=int(held or 0),
            initial_hours_attended=int(attended or 0),
            days_of_week=tuple(int(d) for d in (data.get("daysOfWeek") or ())),
            required_attendance=float(required) if required is not None else DEFAULT_REQUIRED_ATTENDANCE,
            start_month=data.get("startMonth") or None,
            end_month=data.get("endMonth") or None,
        )

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "Subject":
        days = r.get("days_of_week") or ""
        required = r.get("required_attendance")
        return cls(
            id=str(r["id"]),
            name=str(r["name"]),
            initial_hours_held=int(r.get("initial_hours_held") or 0),
            initial_hours_attended=int(r.get("initial_hours_attended") or 0),
            days_of_week=tuple(int(d) for d in str(days).split(",") if d.strip()),
            required_attendance=float(required) if required is not None else DEFAULT_REQUIRED_ATTENDANCE,
            start_month=r.get("start_month") or None,
            end_month=r.get("end_month") or None,
        )
