import pytest

from src.attendance_tracker.attendance_tracker.attendance import duty_leave
from src.attendance_tracker.attendance_tracker.attendance.duty_leave import DutyState
from src.attendance_tracker.attendance_tracker.attendance.model import AttendanceRecord
from src.attendance_tracker.attendance_tracker.core.enums import AttendanceStatus
from src.attendance_tracker.attendance_tracker.core.exceptions import ValidationError


def _record(**fields):
    base = dict(id="r1", subject_id="s1", date="2025-03-10", status=AttendanceStatus.ABSENT, created_at="2025-03-10T09:00:00")
    base.update(fields)
    return AttendanceRecord(**base)


def _step(record, transition):
    return transition.apply(record, updated_at="2025-03-11T09:00:00")


def test_request_approve_cancel_round_trip():
    absent = _step(_record(status=AttendanceStatus.PRESENT), duty_leave.mark_absent(None))
    assert duty_leave.duty_state(absent) == DutyState.ABSENT

    pending = _step(absent, duty_leave.request(absent, "  Sports meet "))
    assert duty_leave.duty_state(pending) == DutyState.PENDING_DUTY
    assert pending.status == AttendanceStatus.ABSENT
    assert pending.duty_reason == "Sports meet"

    approved = _step(pending, duty_leave.approve(pending))
    assert duty_leave.duty_state(approved) == DutyState.APPROVED_DUTY
    assert approved.status == AttendanceStatus.DUTY_LEAVE
    assert approved.duty_reason == "Sports meet"

    cancelled = _step(approved, duty_leave.cancel(approved))
    assert duty_leave.duty_state(cancelled) == DutyState.ABSENT
    assert (cancelled.duty_requested, cancelled.duty_approved, cancelled.duty_reason) == (False, False, None)
    assert cancelled.id == "r1"
    assert cancelled.created_at == "2025-03-10T09:00:00"


def test_request_without_existing_record_is_allowed():
    transition = duty_leave.request(None, "Hackathon")
    assert transition.state == DutyState.PENDING_DUTY


@pytest.mark.parametrize("reason", ["", "   ", None])
def test_request_requires_reason(reason):
    with pytest.raises(ValidationError):
        duty_leave.request(_record(), reason)


def test_request_refused_for_present_class():
    with pytest.raises(ValidationError, match="marked present"):
        duty_leave.request(_record(status=AttendanceStatus.PRESENT), "Hackathon")


def test_approve_requires_pending_request():
    with pytest.raises(ValidationError):
        duty_leave.approve(_record())
    with pytest.raises(ValidationError):
        duty_leave.approve(None)


def test_cancel_refused_for_plain_absence():
    with pytest.raises(ValidationError, match="plain absence"):
        duty_leave.cancel(_record())


def test_duty_leave_cannot_be_marked_directly():
    with pytest.raises(ValidationError):
        duty_leave.apply_status(_record(), AttendanceStatus.DUTY_LEAVE)


def test_marking_present_clears_duty_fields():
    pending = _record(duty_requested=True, duty_reason="Event")
    transition = duty_leave.apply_status(pending, AttendanceStatus.PRESENT)
    assert transition == duty_leave.DutyTransition(AttendanceStatus.PRESENT, False, False, None)


def test_marking_absent_keeps_pending_and_demotes_approved():
    pending = _record(duty_requested=True, duty_reason="Event")
    assert duty_leave.apply_status(pending, AttendanceStatus.ABSENT).state == DutyState.PENDING_DUTY

    approved = _record(status=AttendanceStatus.DUTY_LEAVE, duty_requested=True, duty_approved=True, duty_reason="Event")
    demoted = duty_leave.apply_status(approved, AttendanceStatus.ABSENT)
    assert demoted.state == DutyState.PENDING_DUTY
    assert demoted.duty_reason == "Event"


def test_mark_absent_always_clears():
    approved = _record(status=AttendanceStatus.DUTY_LEAVE, duty_requested=True, duty_approved=True, duty_reason="Event")
    assert duty_leave.mark_absent(approved).state == DutyState.ABSENT
