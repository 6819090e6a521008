"""Attendance percentages and skip/attend advice.

Everything here is a pure function over entities or plain counts; nothing is
cached or persisted.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional

from ..attendance.model import AttendanceRecord
from ..common.validators import require_percentage
from ..core.enums import AttendanceStatus
from ..subjects.model import Subject
from .model import AttendanceAdvice, AttendanceStats, SubjectAttendanceData

# Percentages and floor/ceil inputs are rounded to this many places so that
# exact boundaries (29 of 50 at 58%) are not pushed across by binary rounding.
_PRECISION = 9


def percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, _PRECISION) if whole > 0 else 0.0


def subject_attendance_data(subject: Subject, records: Iterable[AttendanceRecord]) -> SubjectAttendanceData:
    own = [r for r in records if r.subject_id == subject.id]
    attended = sum(1 for r in own if r.status.counts_as_attended)
    present = sum(1 for r in own if r.status == AttendanceStatus.PRESENT)

    held = subject.initial_hours_held + len(own)
    classes_attended = subject.initial_hours_attended + attended
    physical_attended = subject.initial_hours_attended + present

    pct = percentage(classes_attended, held)
    return SubjectAttendanceData(
        classes_held=held,
        classes_attended=classes_attended,
        attendance_percentage=pct,
        is_at_risk=pct < subject.required_attendance,
        physical_classes_attended=physical_attended,
        physical_attendance_percentage=percentage(physical_attended, held),
    )


def attendance_stats(subjects: Iterable[Subject], records: Iterable[AttendanceRecord]) -> AttendanceStats:
    """Overall figures.

    Held/attended totals are summed subject by subject so each subject's
    carried-over counts are included exactly once. The flat ``total_*``
    counters look at records only; ``total_present`` counts every record that
    counts as attended (present or duty leave).
    """

    records = list(records)
    held = attended = physical = 0
    for subject in subjects:
        data = subject_attendance_data(subject, records)
        held += data.classes_held
        attended += data.classes_attended
        physical += data.physical_classes_attended

    return AttendanceStats(
        total_present=sum(1 for r in records if r.status.counts_as_attended),
        total_absent=sum(1 for r in records if r.status == AttendanceStatus.ABSENT),
        total_duty_leave=sum(1 for r in records if r.status == AttendanceStatus.DUTY_LEAVE),
        total_records=len(records),
        total_classes_held=held,
        total_classes_attended=attended,
        attendance_percentage=percentage(attended, held),
        physical_attendance_percentage=percentage(physical, held),
    )


def classes_to_skip(attended: int, total: int, threshold: float) -> int:
    """Largest number of further missed classes that keeps ``attended/total >= threshold``."""

    if threshold <= 0:
        return 0
    return max(0, math.floor(round(attended * 100 / threshold - total, _PRECISION)))


def classes_to_attend(attended: int, total: int, threshold: float) -> Optional[int]:
    """Smallest run of attended classes that lifts the percentage to ``threshold``.

    Returns None when no number of classes can get there (a 100% target once
    a class has been missed).
    """

    if percentage(attended, total) >= threshold:
        return 0
    if threshold >= 100:
        return None
    ratio = threshold / 100
    needed = (ratio * total - attended) / (1 - ratio)
    return max(0, math.ceil(round(needed, _PRECISION)))


def attendance_advice(
    *,
    attended: int,
    total_held: int,
    threshold: float = 75.0,
    classes_per_week: int = 0,
) -> AttendanceAdvice:
    threshold = require_percentage(threshold, "Threshold")
    target = _fmt_pct(threshold)

    if total_held <= 0:
        return AttendanceAdvice(
            current_percentage=0.0,
            is_above_threshold=False,
            classes_to_skip=0,
            classes_to_attend=0,
            message="No classes held yet",
        )

    current = percentage(attended, total_held)
    if current >= threshold:
        if threshold == 0:
            return AttendanceAdvice(current, True, 0, 0, "No minimum attendance is required")
        skip = classes_to_skip(attended, total_held, threshold)
        message = (
            f"You can skip {skip} {_plural(skip)} and stay above {target}%"
            if skip > 0
            else f"Attend all remaining classes to maintain {target}%"
        )
        return AttendanceAdvice(current, True, skip, 0, message)

    needed = classes_to_attend(attended, total_held, threshold)
    if needed is None:
        return AttendanceAdvice(
            current_percentage=current,
            is_above_threshold=False,
            classes_to_skip=0,
            classes_to_attend=0,
            message=f"{target}% can no longer be reached after a missed class",
            reachable=False,
        )

    weeks = math.ceil(needed / classes_per_week) if classes_per_week > 0 and needed > 0 else None
    if needed <= 0:
        message = "Almost there! Stay consistent"
    elif weeks is not None:
        message = f"Attend {needed} more {_plural(needed)} (about {weeks} {'week' if weeks == 1 else 'weeks'}) to reach {target}%"
    else:
        message = f"Attend {needed} more {_plural(needed)} to reach {target}%"
    return AttendanceAdvice(
        current_percentage=current,
        is_above_threshold=False,
        classes_to_skip=0,
        classes_to_attend=needed,
        message=message,
        weeks_to_recover=weeks,
    )


def _plural(n: int) -> str:
    return "class" if n == 1 else "classes"


def _fmt_pct(value: float) -> str:
    return f"{value:g}"
