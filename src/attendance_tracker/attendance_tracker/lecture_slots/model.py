from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from ..common.datetime_utils import minutes_to_time, time_to_minutes
from ..common.identity import EntityId, classify_id
from ..common.validators import require_int_range
from ..core.constants import MAX_SLOT_HOURS, MIN_SLOT_HOURS
from ..core.enums import Weekday
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class LectureSlot:
    """Domain entity: a recurring weekly time window of one subject."""

    id: str
    subject_id: str
    day_of_week: int
    start_time: str
    end_time: str
    duration_hours: int = 1

    @classmethod
    def from_start(
        cls,
        *,
        id: str,
        subject_id: str,
        weekday: Weekday,
        start_time: str,
        duration_hours: int,
    ) -> "LectureSlot":
        start = time_to_minutes(start_time)
        return cls(
            id=id,
            subject_id=subject_id,
            day_of_week=int(weekday),
            start_time=minutes_to_time(start),
            end_time=minutes_to_time(start + int(duration_hours) * 60),
            duration_hours=int(duration_hours),
        )

    @property
    def identity(self) -> EntityId:
        return classify_id(self.id)

    @property
    def weekday(self) -> Weekday:
        return Weekday(self.day_of_week % 7)

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)

    def overlaps(self, other: "LectureSlot") -> bool:
        if self.day_of_week != other.day_of_week:
            return False
        return self.start_minutes < other.end_minutes and other.start_minutes < self.end_minutes

    def validated(self) -> "LectureSlot":
        day = require_int_range(self.day_of_week, "Day of week", 0, 6)
        hours = require_int_range(self.duration_hours, "Duration", MIN_SLOT_HOURS, MAX_SLOT_HOURS)
        start = time_to_minutes(self.start_time)
        end = time_to_minutes(self.end_time)
        if end <= start:
            raise ValidationError(f"Lecture on {Weekday(day).full_name} must end after it starts")
        return LectureSlot(
            id=self.id,
            subject_id=self.subject_id,
            day_of_week=day,
            start_time=minutes_to_time(start),
            end_time=minutes_to_time(end),
            duration_hours=hours,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subjectId": self.subject_id,
            "dayOfWeek": self.day_of_week,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "durationHours": self.duration_hours,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "LectureSlot":
        return cls(
            id=str(data.get("id") or ""),
            subject_id=str(data.get("subjectId") or ""),
            day_of_week=int(data["dayOfWeek"]),
            start_time=str(data["startTime"])[:5],
            end_time=str(data["endTime"])[:5],
            duration_hours=int(data.get("durationHours") or 1),
        )

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "LectureSlot":
        return cls(
            id=str(r["id"]),
            subject_id=str(r["subject_id"]),
            day_of_week=int(r["day_of_week"]),
            start_time=str(r["start_time"])[:5],
            end_time=str(r["end_time"])[:5],
            duration_hours=int(r.get("duration_hours") or 1),
        )


def validate_schedule(slots: Iterable[LectureSlot]) -> list[LectureSlot]:
    """Validate each slot and reject same-day overlaps within the set."""

    checked = [s.validated() for s in slots]
    for i, a in enumerate(checked):
        for b in checked[i + 1 :]:
            if a.overlaps(b):
                raise ValidationError(
                    f"Lectures overlap on {a.weekday.full_name}: "
                    f"{a.start_time}-{a.end_time} and {b.start_time}-{b.end_time}"
                )
    return checked


def sort_key(slot: LectureSlot) -> tuple[int, str]:
    return slot.day_of_week, slot.start_time
