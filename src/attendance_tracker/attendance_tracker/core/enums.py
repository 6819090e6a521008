from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Outcome of one class, stored as-is in the cache and the database."""

    PRESENT = "present"
    ABSENT = "absent"
    DUTY_LEAVE = "duty-leave"

    @classmethod
    def parse(cls, value: "str | AttendanceStatus") -> "AttendanceStatus":
        if isinstance(value, AttendanceStatus):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            # Unknown statuses from old caches count as absences.
            return cls.ABSENT

    @property
    def counts_as_attended(self) -> bool:
        return self in (AttendanceStatus.PRESENT, AttendanceStatus.DUTY_LEAVE)


class Weekday(int, Enum):
    """Day of week using 0=Sunday..6=Saturday."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @property
    def full_name(self) -> str:
        return self.name.capitalize()

    @property
    def short_name(self) -> str:
        return self.full_name[:3]

    @classmethod
    def from_python_weekday(cls, value: int) -> "Weekday":
        """Convert ``date.weekday()`` (0=Monday) into this enum."""
        return cls((int(value) + 1) % 7)


class CacheCollection(str, Enum):
    """Keys of the three independently stored cache blobs."""

    SUBJECTS = "attendance_subjects"
    LECTURE_SLOTS = "lecture_slots"
    ATTENDANCE_RECORDS = "attendance_records"
