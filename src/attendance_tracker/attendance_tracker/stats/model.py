from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SubjectAttendanceData:
    """Read-model for one subject; recomputed on every query."""

    classes_held: int
    classes_attended: int
    attendance_percentage: float
    is_at_risk: bool
    physical_classes_attended: int = 0
    physical_attendance_percentage: float = 0.0


EMPTY_SUBJECT_DATA = SubjectAttendanceData(
    classes_held=0,
    classes_attended=0,
    attendance_percentage=0.0,
    is_at_risk=False,
)


@dataclass(frozen=True)
class AttendanceStats:
    total_present: int
    total_absent: int
    total_duty_leave: int
    total_records: int
    total_classes_held: int
    total_classes_attended: int
    attendance_percentage: float
    physical_attendance_percentage: float


@dataclass(frozen=True)
class AttendanceAdvice:
    current_percentage: float
    is_above_threshold: bool
    classes_to_skip: int
    classes_to_attend: int
    message: str
    reachable: bool = True
    weeks_to_recover: Optional[int] = None
