"""Duty-leave workflow on a single attendance record.

States are derived from ``(status, duty_requested, duty_approved)``::

    PRESENT        status=present
    ABSENT         status=absent,     requested=False, approved=False
    PENDING_DUTY   status=absent,     requested=True,  approved=False, reason set
    APPROVED_DUTY  status=duty-leave, requested=True,  approved=True,  reason set

Transitions are pure: they take the current record (or None when nothing has
been recorded yet) and return a ``DutyTransition`` describing the target
fields. Callers persist the result either locally or through the gateway.
Illegal transitions raise ``ValidationError`` before anything is written.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from ..common.validators import require_non_empty
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from .model import AttendanceRecord


class DutyState(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    PENDING_DUTY = "pending_duty"
    APPROVED_DUTY = "approved_duty"


@dataclass(frozen=True)
class DutyTransition:
    status: AttendanceStatus
    duty_requested: bool
    duty_approved: bool
    duty_reason: Optional[str]

    @property
    def state(self) -> DutyState:
        return _state_of(self.status, self.duty_requested, self.duty_approved)

    def apply(self, record: AttendanceRecord, *, updated_at: str) -> AttendanceRecord:
        return replace(
            record,
            status=self.status,
            duty_requested=self.duty_requested,
            duty_approved=self.duty_approved,
            duty_reason=self.duty_reason,
            updated_at=updated_at,
        )


def _state_of(status: AttendanceStatus, requested: bool, approved: bool) -> DutyState:
    if status == AttendanceStatus.PRESENT:
        return DutyState.PRESENT
    if status == AttendanceStatus.DUTY_LEAVE:
        # duty-leave without the approval flag only comes from hand-edited data;
        # treat it as approved since it already counts toward attendance.
        return DutyState.APPROVED_DUTY
    if requested and approved:
        return DutyState.APPROVED_DUTY
    if requested:
        return DutyState.PENDING_DUTY
    return DutyState.ABSENT


def duty_state(record: Optional[AttendanceRecord]) -> Optional[DutyState]:
    if record is None:
        return None
    return _state_of(record.status, record.duty_requested, record.duty_approved)


def mark_absent(record: Optional[AttendanceRecord]) -> DutyTransition:
    """* -> ABSENT."""
    return DutyTransition(AttendanceStatus.ABSENT, False, False, None)


def request(record: Optional[AttendanceRecord], reason: str) -> DutyTransition:
    """ABSENT (or nothing recorded yet) -> PENDING_DUTY."""

    reason = require_non_empty(reason, "Duty leave reason")
    state = duty_state(record)
    if state not in (None, DutyState.ABSENT):
        raise ValidationError(_illegal("request duty leave for", state))
    return DutyTransition(AttendanceStatus.ABSENT, True, False, reason)


def approve(record: Optional[AttendanceRecord]) -> DutyTransition:
    """PENDING_DUTY -> APPROVED_DUTY, keeping the stored reason."""

    state = duty_state(record)
    if record is None or state != DutyState.PENDING_DUTY:
        raise ValidationError(_illegal("approve duty leave for", state))
    return DutyTransition(AttendanceStatus.DUTY_LEAVE, True, True, record.duty_reason)


def cancel(record: Optional[AttendanceRecord]) -> DutyTransition:
    """PENDING_DUTY | APPROVED_DUTY -> ABSENT."""

    state = duty_state(record)
    if state not in (DutyState.PENDING_DUTY, DutyState.APPROVED_DUTY):
        raise ValidationError(_illegal("cancel duty leave for", state))
    return DutyTransition(AttendanceStatus.ABSENT, False, False, None)


def apply_status(record: Optional[AttendanceRecord], status: AttendanceStatus) -> DutyTransition:
    """Plain present/absent marking.

    Moving to present clears every duty field. Moving to absent keeps a
    pending request as it is and turns an approved duty leave back into a
    pending one, so ``status == duty-leave`` always implies approval.
    """

    status = AttendanceStatus.parse(status)
    if status == AttendanceStatus.DUTY_LEAVE:
        raise ValidationError("Duty leave must be requested and approved, not marked directly")
    if status == AttendanceStatus.PRESENT or record is None:
        return DutyTransition(status, False, False, None)

    state = duty_state(record)
    if state in (DutyState.PENDING_DUTY, DutyState.APPROVED_DUTY):
        return DutyTransition(AttendanceStatus.ABSENT, True, False, record.duty_reason)
    return DutyTransition(AttendanceStatus.ABSENT, False, False, None)


def _illegal(action: str, state: Optional[DutyState]) -> str:
    label = {
        None: "a class with no attendance recorded",
        DutyState.PRESENT: "a class marked present",
        DutyState.ABSENT: "a plain absence",
        DutyState.PENDING_DUTY: "a pending duty leave",
        DutyState.APPROVED_DUTY: "an approved duty leave",
    }[state]
    return f"Cannot {action} {label}"
