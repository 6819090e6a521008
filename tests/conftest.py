from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from src.attendance_tracker.attendance_tracker.attendance.model import AttendanceRecord
from src.attendance_tracker.attendance_tracker.attendance.repository import UNSET
from src.attendance_tracker.attendance_tracker.cache.store import InMemoryCacheStore
from src.attendance_tracker.attendance_tracker.core.enums import AttendanceStatus
from src.attendance_tracker.attendance_tracker.core.exceptions import LocalPersistenceError, RemoteGatewayError
from src.attendance_tracker.attendance_tracker.session.context import SessionAuthContext
from src.attendance_tracker.attendance_tracker.sync.orchestrator import SyncOrchestrator

# Wednesday
NOW = datetime(2025, 3, 12, 10, 0, 0)


class FakeSubjectsGateway:
    def __init__(self, remote: "FakeRemote"):
        self._remote = remote
        self.fail_list = False
        self.fail_create = False
        self.fail_update = False
        self.fail_delete = False
        self.deleted: list[str] = []

    def list_subjects(self):
        self._remote.calls.append("list_subjects")
        if self.fail_list:
            raise RemoteGatewayError("subjects unavailable")
        return list(self._remote.subjects.values())

    def create(self, subject):
        self._remote.calls.append("create_subject")
        if self.fail_create:
            return None
        stored = replace(subject, id=self._remote.next_id("subj"))
        self._remote.subjects[stored.id] = stored
        return stored

    def update(self, subject_id, subject):
        self._remote.calls.append("update_subject")
        if self.fail_update or subject_id not in self._remote.subjects:
            return False
        self._remote.subjects[subject_id] = subject
        return True

    def delete(self, subject_id):
        self._remote.calls.append("delete_subject")
        if self.fail_delete or subject_id not in self._remote.subjects:
            return False
        del self._remote.subjects[subject_id]
        self._remote.slots = {k: s for k, s in self._remote.slots.items() if s.subject_id != subject_id}
        self._remote.records = {k: r for k, r in self._remote.records.items() if r.subject_id != subject_id}
        self.deleted.append(subject_id)
        return True


class FakeSlotsGateway:
    def __init__(self, remote: "FakeRemote"):
        self._remote = remote
        self.fail_list = False
        self.fail_create = False
        self.fail_update = False
        self.fail_delete = False

    def list_for_owned_subjects(self):
        self._remote.calls.append("list_slots")
        if self.fail_list:
            raise RemoteGatewayError("slots unavailable")
        return list(self._remote.slots.values())

    def create_many(self, slots):
        self._remote.calls.append("create_slots")
        if self.fail_create:
            return []
        created = [replace(s, id=self._remote.next_id("slot")) for s in slots]
        for s in created:
            self._remote.slots[s.id] = s
        return created

    def update(self, slot_id, slot):
        self._remote.calls.append("update_slot")
        if self.fail_update or slot_id not in self._remote.slots:
            return False
        self._remote.slots[slot_id] = slot
        return True

    def delete(self, slot_id):
        self._remote.calls.append("delete_slot")
        if self.fail_delete or slot_id not in self._remote.slots:
            return False
        del self._remote.slots[slot_id]
        return True


class FakeAttendanceGateway:
    def __init__(self, remote: "FakeRemote"):
        self._remote = remote
        self.fail_list = False
        self.fail_writes = False
        self.list_calls: list[list[str]] = []

    def list_for_subjects(self, subject_ids):
        self._remote.calls.append("list_records")
        self.list_calls.append(list(subject_ids))
        if self.fail_list:
            raise RemoteGatewayError("records unavailable")
        return [r for r in self._remote.records.values() if r.subject_id in subject_ids]

    def upsert(
        self,
        *,
        subject_id,
        date,
        status,
        lecture_slot_id=None,
        hours_logged=1,
        duty_requested=UNSET,
        duty_approved=UNSET,
        duty_reason=UNSET,
    ):
        self._remote.calls.append("upsert")
        if self.fail_writes or subject_id not in self._remote.subjects:
            return None
        key = (subject_id, lecture_slot_id or "", date)
        existing = self._remote.records.get(key)
        if existing is None:
            existing = AttendanceRecord(
                id=self._remote.next_id("rec"),
                subject_id=subject_id,
                lecture_slot_id=lecture_slot_id,
                date=date,
                status=AttendanceStatus.parse(status),
                created_at=NOW.isoformat(),
            )
        fields = {"status": AttendanceStatus.parse(status), "hours_logged": hours_logged, "updated_at": NOW.isoformat()}
        for name, value in (
            ("duty_requested", duty_requested),
            ("duty_approved", duty_approved),
            ("duty_reason", duty_reason),
        ):
            if value is not UNSET:
                fields[name] = value
        stored = replace(existing, **fields)
        self._remote.records[key] = stored
        return stored

    def mark_duty_leave(self, *, subject_id, date, reason, approved=True, lecture_slot_id=None):
        self._remote.calls.append("mark_duty_leave")
        existing = self._remote.records.get((subject_id, lecture_slot_id or "", date))
        return self.upsert(
            subject_id=subject_id,
            date=date,
            status=AttendanceStatus.DUTY_LEAVE if approved else AttendanceStatus.ABSENT,
            lecture_slot_id=lecture_slot_id,
            hours_logged=existing.hours_logged if existing else 1,
            duty_requested=True,
            duty_approved=approved,
            duty_reason=reason,
        )

    def cancel_duty_leave(self, *, subject_id, date, lecture_slot_id=None):
        self._remote.calls.append("cancel_duty_leave")
        key = (subject_id, lecture_slot_id or "", date)
        if self.fail_writes or key not in self._remote.records:
            return None
        stored = replace(
            self._remote.records[key],
            status=AttendanceStatus.ABSENT,
            duty_requested=False,
            duty_approved=False,
            duty_reason=None,
        )
        self._remote.records[key] = stored
        return stored

    def update(self, record_id, fields):
        self._remote.calls.append("update_record")
        if self.fail_writes:
            return False
        for key, record in self._remote.records.items():
            if record.id == record_id:
                values = dict(fields)
                if "status" in values:
                    values["status"] = AttendanceStatus.parse(values["status"])
                self._remote.records[key] = replace(record, **values)
                return True
        return False


class FakeRemote:
    """In-memory authoritative store shared by the three fake gateways."""

    def __init__(self):
        self.subjects: dict = {}
        self.slots: dict = {}
        self.records: dict = {}
        self.calls: list[str] = []
        self._seq = 0
        self.subjects_gateway = FakeSubjectsGateway(self)
        self.slots_gateway = FakeSlotsGateway(self)
        self.attendance_gateway = FakeAttendanceGateway(self)

    def next_id(self, kind: str) -> str:
        self._seq += 1
        return f"srv-{kind}-{self._seq}"


class FailingCacheStore(InMemoryCacheStore):
    def save(self, collection, entities):
        raise LocalPersistenceError("disk full")


@pytest.fixture
def auth():
    return SessionAuthContext()


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def cache():
    return InMemoryCacheStore()


@pytest.fixture
def failing_cache():
    return FailingCacheStore()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_tracker(auth, remote, cache, sleeps):
    def _make(**overrides):
        options = dict(
            auth=auth,
            subjects=remote.subjects_gateway,
            lecture_slots=remote.slots_gateway,
            attendance=remote.attendance_gateway,
            cache=cache,
            login_wait_attempts=10,
            login_wait_interval=0.2,
            sleep=sleeps.append,
            clock=lambda: NOW,
        )
        options.update(overrides)
        return SyncOrchestrator(**options)

    return _make
