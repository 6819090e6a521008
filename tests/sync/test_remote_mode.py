import pytest

from src.attendance_tracker.attendance_tracker.attendance.model import AttendanceRecord
from src.attendance_tracker.attendance_tracker.core.enums import AttendanceStatus, CacheCollection, Weekday
from src.attendance_tracker.attendance_tracker.core.exceptions import RemoteWriteError, ValidationError
from src.attendance_tracker.attendance_tracker.lecture_slots.model import LectureSlot
from src.attendance_tracker.attendance_tracker.subjects.model import Subject

MONDAY = "2025-03-10"


def _slot(day=Weekday.MONDAY, start="09:00", hours=1, id="", subject_id=""):
    return LectureSlot.from_start(id=id, subject_id=subject_id, weekday=day, start_time=start, duration_hours=hours)


def _seed(remote):
    subject = Subject(id="srv-subj-a", name="Maths", required_attendance=75.0)
    slot = _slot(id="srv-slot-a", subject_id=subject.id)
    record = AttendanceRecord(
        id="srv-rec-a",
        subject_id=subject.id,
        lecture_slot_id=slot.id,
        date=MONDAY,
        status=AttendanceStatus.PRESENT,
        created_at="2025-03-10T09:00:00",
    )
    remote.subjects[subject.id] = subject
    remote.slots[slot.id] = slot
    remote.records[(subject.id, slot.id, MONDAY)] = record
    return subject, slot, record


@pytest.fixture
def signed_in(auth):
    auth.sign_in("user-1")
    return auth


def test_add_subject_adopts_server_id(signed_in, make_tracker, remote, cache):
    tracker = make_tracker()

    subject = tracker.add_subject(Subject(id="", name="Maths"))

    assert subject.id.startswith("srv-subj-")
    assert remote.subjects[subject.id].name == "Maths"
    assert cache.load(CacheCollection.SUBJECTS) == [subject]


def test_rejected_create_leaves_memory_untouched(signed_in, make_tracker, remote, cache):
    tracker = make_tracker()
    remote.subjects_gateway.fail_create = True

    with pytest.raises(RemoteWriteError, match="Failed to save subject"):
        tracker.add_subject(Subject(id="", name="Maths"))

    assert tracker.subjects == ()
    assert cache.blobs == {}


def test_subject_with_slots_gets_server_ids_everywhere(signed_in, make_tracker, remote):
    tracker = make_tracker()

    subject = tracker.add_subject_with_slots(Subject(id="", name="Maths"), [_slot(), _slot(Weekday.FRIDAY)])

    slots = tracker.get_lecture_slots_for_subject(subject.id)
    assert [s.id.startswith("srv-slot-") for s in slots] == [True, True]
    assert {s.subject_id for s in remote.slots.values()} == {subject.id}


def test_failed_slot_creation_keeps_stored_subject(signed_in, make_tracker, remote, cache):
    tracker = make_tracker()
    remote.slots_gateway.fail_create = True

    with pytest.raises(RemoteWriteError, match="timetable"):
        tracker.add_subject_with_slots(Subject(id="", name="Maths"), [_slot()])

    [subject] = tracker.subjects
    assert subject.id in remote.subjects
    assert tracker.lecture_slots == ()
    assert cache.load(CacheCollection.SUBJECTS) == [subject]


def test_rejected_update_and_delete(signed_in, make_tracker, remote):
    tracker = make_tracker()
    subject = tracker.add_subject(Subject(id="", name="Maths"))
    remote.subjects_gateway.fail_update = True
    remote.subjects_gateway.fail_delete = True

    with pytest.raises(RemoteWriteError):
        tracker.update_subject(Subject(id=subject.id, name="Renamed"))
    with pytest.raises(RemoteWriteError):
        tracker.delete_subject(subject.id)

    assert tracker.subjects == (subject,)


def test_sync_is_idempotent(signed_in, make_tracker, remote, cache):
    _seed(remote)
    tracker = make_tracker()

    tracker.sync_with_remote()
    state = (tracker.subjects, tracker.lecture_slots, tracker.attendance_records)
    blobs = dict(cache.blobs)
    tracker.sync_with_remote()

    assert (tracker.subjects, tracker.lecture_slots, tracker.attendance_records) == state
    assert cache.blobs == blobs
    assert tracker.syncing is False


def test_sync_steps_run_in_order(signed_in, make_tracker, remote):
    _seed(remote)
    make_tracker().sync_with_remote()
    assert remote.calls == ["list_subjects", "list_slots", "list_records"]


def test_failed_step_only_skips_itself(signed_in, make_tracker, remote):
    subject, slot, _ = _seed(remote)
    tracker = make_tracker()
    tracker.sync_with_remote()

    remote.subjects["srv-subj-b"] = Subject(id="srv-subj-b", name="Physics")
    remote.slots["srv-slot-b"] = _slot(Weekday.TUESDAY, id="srv-slot-b", subject_id="srv-subj-b")
    remote.slots_gateway.fail_list = True
    tracker.sync_with_remote()

    assert {s.id for s in tracker.subjects} == {subject.id, "srv-subj-b"}
    assert tracker.lecture_slots == (slot,)
    assert remote.attendance_gateway.list_calls[-1] == [subject.id, "srv-subj-b"]


def test_records_are_not_fetched_without_subjects(signed_in, make_tracker, remote):
    make_tracker().sync_with_remote()
    assert remote.attendance_gateway.list_calls == []


def test_guest_sync_is_a_no_op(make_tracker, remote):
    make_tracker().sync_with_remote()
    assert remote.calls == []


def test_expired_subjects_are_removed_on_sync(signed_in, make_tracker, remote):
    remote.subjects["old"] = Subject(id="old", name="Last term", end_month="2025-02")
    remote.subjects["current"] = Subject(id="current", name="This term", end_month="2025-03")
    remote.records[("old", "", MONDAY)] = AttendanceRecord(
        id="r-old", subject_id="old", date=MONDAY, status=AttendanceStatus.PRESENT
    )
    tracker = make_tracker()

    tracker.sync_with_remote()

    assert [s.id for s in tracker.subjects] == ["current"]
    assert tracker.attendance_records == ()
    assert remote.subjects_gateway.deleted == ["old"]


def test_expiry_cleanup_tolerates_remote_delete_failure(signed_in, make_tracker, remote):
    remote.subjects["old"] = Subject(id="old", name="Last term", end_month="2024-12")
    remote.subjects_gateway.fail_delete = True
    tracker = make_tracker()

    tracker.sync_with_remote()

    assert tracker.subjects == ()


def test_attendance_write_failure_raises_and_keeps_memory(signed_in, make_tracker, remote):
    subject, _, _ = _seed(remote)
    tracker = make_tracker()
    tracker.sync_with_remote()
    before = tracker.attendance_records
    remote.attendance_gateway.fail_writes = True

    with pytest.raises(RemoteWriteError, match="Failed to save attendance"):
        tracker.mark_attendance(subject.id, "2025-03-11", "present")

    assert tracker.attendance_records == before


def test_slot_attendance_adopts_server_record(signed_in, make_tracker, remote):
    subject, slot, record = _seed(remote)
    tracker = make_tracker()
    tracker.sync_with_remote()

    updated = tracker.mark_lecture_attendance(slot.id, MONDAY, "absent")

    assert updated.id == record.id
    assert updated.status == AttendanceStatus.ABSENT
    assert tracker.attendance_records == (updated,)


def test_duty_leave_flow_against_store(signed_in, make_tracker, remote):
    subject = Subject(id="srv-subj-a", name="Maths")
    remote.subjects[subject.id] = subject
    tracker = make_tracker()
    tracker.sync_with_remote()

    tracker.mark_absent(subject.id, MONDAY)
    pending = tracker.request_duty_leave(subject.id, MONDAY, "Sports meet")
    assert (pending.duty_requested, pending.duty_approved) == (True, False)

    approved = tracker.approve_duty_leave(subject.id, MONDAY)
    stored = remote.records[(subject.id, "", MONDAY)]
    assert approved == stored
    assert stored.status == AttendanceStatus.DUTY_LEAVE
    assert stored.duty_reason == "Sports meet"

    cancelled = tracker.cancel_duty_request(subject.id, MONDAY)
    assert remote.records[(subject.id, "", MONDAY)].status == AttendanceStatus.ABSENT
    assert cancelled.duty_reason is None
    assert "cancel_duty_leave" in remote.calls


def test_illegal_transition_makes_no_remote_call(signed_in, make_tracker, remote):
    subject = Subject(id="srv-subj-a", name="Maths")
    remote.subjects[subject.id] = subject
    tracker = make_tracker()
    tracker.sync_with_remote()
    tracker.mark_attendance(subject.id, MONDAY, "present")
    calls = list(remote.calls)

    with pytest.raises(ValidationError, match="marked present"):
        tracker.request_duty_leave(subject.id, MONDAY, "Too late")

    assert remote.calls == calls


def test_update_record_status_when_signed_in(signed_in, make_tracker, remote):
    _, _, record = _seed(remote)
    tracker = make_tracker()
    tracker.sync_with_remote()

    updated = tracker.update_record_status(record.id, "absent", reason="Sick")

    assert updated.status == AttendanceStatus.ABSENT
    assert updated.reason == "Sick"
    assert [r.reason for r in remote.records.values()] == ["Sick"]


def test_timetable_edit_runs_delete_update_create(signed_in, make_tracker, remote):
    subject, slot, _ = _seed(remote)
    remote.slots["srv-slot-z"] = _slot(Weekday.THURSDAY, id="srv-slot-z", subject_id=subject.id)
    tracker = make_tracker()
    tracker.sync_with_remote()
    del remote.calls[:]

    edited = LectureSlot(
        id=slot.id, subject_id=subject.id, day_of_week=1, start_time="10:00", end_time="11:00", duration_hours=1
    )
    result = tracker.update_lecture_slots(subject.id, [edited, _slot(Weekday.FRIDAY)])

    assert remote.calls == ["delete_slot", "update_slot", "create_slots"]
    assert [s.id for s in result][0] == slot.id
    assert result[1].id.startswith("srv-slot-")
    assert set(remote.slots) == {s.id for s in result}


def test_timetable_partial_failure_is_persisted(signed_in, make_tracker, remote, cache):
    subject, slot, _ = _seed(remote)
    tracker = make_tracker()
    tracker.sync_with_remote()
    remote.slots_gateway.fail_create = True

    with pytest.raises(RemoteWriteError):
        tracker.update_lecture_slots(subject.id, [_slot(Weekday.FRIDAY)])

    assert tracker.lecture_slots == ()
    assert slot.id not in remote.slots
    assert cache.load(CacheCollection.LECTURE_SLOTS) == []
