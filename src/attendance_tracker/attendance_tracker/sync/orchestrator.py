from __future__ import annotations

import logging
import time
from dataclasses import replace
from datetime import date as date_type, datetime
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from ..attendance import duty_leave
from ..attendance.duty_leave import DutyState, DutyTransition
from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceGateway
from ..cache.store import CacheStore
from ..common.datetime_utils import current_month, normalize_date, now_local, parse_iso_date
from ..common.identity import RemoteId, new_local_id
from ..common.reconcile import diff_by_id
from ..common.retry import WaitOutcome, wait_until
from ..common.validators import require_status
from ..core.constants import DEFAULT_HOURS_LOGGED, LOGIN_WAIT_ATTEMPTS, LOGIN_WAIT_INTERVAL_SECONDS
from ..core.enums import AttendanceStatus, CacheCollection, Weekday
from ..core.exceptions import (
    AuthenticationError,
    LocalPersistenceError,
    NotFoundError,
    RemoteGatewayError,
    RemoteWriteError,
    ValidationError,
)
from ..lecture_slots.model import LectureSlot, sort_key, validate_schedule
from ..lecture_slots.repository import LectureSlotGateway
from ..session.context import AuthContext
from ..stats import calculator
from ..stats.model import EMPTY_SUBJECT_DATA, AttendanceAdvice, AttendanceStats, SubjectAttendanceData
from ..subjects.model import Subject
from ..subjects.repository import SubjectGateway

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

Listener = Callable[["SyncOrchestrator"], None]


class SyncOrchestrator:
    """Owns the in-memory subjects, lecture slots and attendance records.

    Signed in, every write goes to the authoritative store first and memory
    only changes once the store has accepted it (``RemoteWriteError``
    otherwise). As a guest, writes stay local and get ``local_`` ids. After
    every change the affected collections are written to the cache store;
    cache failures are logged and never undo the in-memory change.

    Callers must not run overlapping writes against the same entity; there is
    no internal lock.
    """

    def __init__(
        self,
        *,
        auth: AuthContext,
        subjects: SubjectGateway,
        lecture_slots: LectureSlotGateway,
        attendance: AttendanceGateway,
        cache: CacheStore,
        login_wait_attempts: int = LOGIN_WAIT_ATTEMPTS,
        login_wait_interval: float = LOGIN_WAIT_INTERVAL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = now_local,
    ):
        self._auth = auth
        self._subjects_gw = subjects
        self._slots_gw = lecture_slots
        self._attendance_gw = attendance
        self._cache = cache
        self._login_wait_attempts = int(login_wait_attempts)
        self._login_wait_interval = float(login_wait_interval)
        self._sleep = sleep
        self._clock = clock

        self._subjects: list[Subject] = []
        self._lecture_slots: list[LectureSlot] = []
        self._attendance_records: list[AttendanceRecord] = []
        self._loading = True
        self._syncing = False
        self._alive = True
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # State & observers
    # ------------------------------------------------------------------
    @property
    def subjects(self) -> tuple[Subject, ...]:
        return tuple(self._subjects)

    @property
    def lecture_slots(self) -> tuple[LectureSlot, ...]:
        return tuple(self._lecture_slots)

    @property
    def attendance_records(self) -> tuple[AttendanceRecord, ...]:
        return tuple(self._attendance_records)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def syncing(self) -> bool:
        return self._syncing

    @property
    def is_authenticated(self) -> bool:
        return self._auth.is_authenticated

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("State listener %r failed", listener)

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    def _collection(self, collection: CacheCollection) -> list:
        return {
            CacheCollection.SUBJECTS: self._subjects,
            CacheCollection.LECTURE_SLOTS: self._lecture_slots,
            CacheCollection.ATTENDANCE_RECORDS: self._attendance_records,
        }[collection]

    def _save(self, collection: CacheCollection) -> bool:
        try:
            self._cache.save(collection, list(self._collection(collection)))
            return True
        except LocalPersistenceError as e:
            logger.warning("Could not cache %s: %s", collection.value, e)
            return False

    def _commit(self, *collections: CacheCollection) -> None:
        for collection in collections:
            self._save(collection)
        self._notify()

    def _load_from_cache(self) -> None:
        for collection in CacheCollection:
            try:
                loaded = self._cache.load(collection)
            except LocalPersistenceError as e:
                logger.warning("Ignoring unreadable cache for %s: %s", collection.value, e)
                continue
            self._collection(collection)[:] = loaded
        logger.debug(
            "Loaded cache: %d subjects, %d slots, %d records",
            len(self._subjects),
            len(self._lecture_slots),
            len(self._attendance_records),
        )

    def clear_local_data(self) -> None:
        """Drop every collection from memory and from the cache."""

        logger.info("Clearing local attendance data")
        self._subjects.clear()
        self._lecture_slots.clear()
        self._attendance_records.clear()
        for collection in CacheCollection:
            try:
                self._cache.clear(collection)
            except LocalPersistenceError as e:
                logger.warning("Could not clear cached %s: %s", collection.value, e)
        self._notify()

    # ------------------------------------------------------------------
    # Lifecycle & sync
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Load the cache for a fast first paint, then sync if signed in."""

        self._loading = True
        self._load_from_cache()
        self._notify()
        if self._auth.is_authenticated:
            self.sync_with_remote()
        self._loading = False
        self._notify()

    def close(self) -> None:
        """Stop any login wait still in progress."""

        self._alive = False

    def sync_with_remote(self) -> None:
        """Replace local collections with the store's copy, step by step.

        Steps run in order (subjects, lecture slots, records, expiry sweep)
        and are not transactional: a failed fetch skips only its own step.
        """

        if not self._auth.is_authenticated:
            logger.debug("Not signed in; sync skipped")
            return

        self._syncing = True
        self._notify()
        try:
            try:
                subjects = list(self._subjects_gw.list_subjects())
            except RemoteGatewayError as e:
                logger.warning("Sync: fetching subjects failed, keeping local copy: %s", e)
            else:
                self._subjects[:] = subjects
                self._save(CacheCollection.SUBJECTS)

            try:
                slots = list(self._slots_gw.list_for_owned_subjects())
            except RemoteGatewayError as e:
                logger.warning("Sync: fetching lecture slots failed, keeping local copy: %s", e)
            else:
                self._lecture_slots[:] = slots
                self._save(CacheCollection.LECTURE_SLOTS)

            if self._subjects:
                subject_ids = [s.id for s in self._subjects]
                try:
                    records = list(self._attendance_gw.list_for_subjects(subject_ids))
                except RemoteGatewayError as e:
                    logger.warning("Sync: fetching attendance failed, keeping local copy: %s", e)
                else:
                    self._attendance_records[:] = records
                    self._save(CacheCollection.ATTENDANCE_RECORDS)

            self._cleanup_expired_subjects()
        finally:
            self._syncing = False
            self._notify()

    def on_user_login(self) -> WaitOutcome:
        """Throw away guest data, wait for the session, then sync."""

        logger.info("User signed in: clearing guest data before sync")
        self.clear_local_data()

        outcome = wait_until(
            lambda: self._auth.is_authenticated,
            attempts=self._login_wait_attempts,
            interval=self._login_wait_interval,
            is_alive=lambda: self._alive,
            sleep=self._sleep,
        )
        if outcome is WaitOutcome.READY:
            self.sync_with_remote()
        elif outcome is WaitOutcome.TIMED_OUT:
            logger.warning(
                "Session not ready after %d attempts; sync skipped until the next explicit sync",
                self._login_wait_attempts,
            )
        else:
            logger.info("Login wait abandoned")
        return outcome

    def on_user_logout(self) -> None:
        self.clear_local_data()

    def _cleanup_expired_subjects(self, today: Optional[date_type] = None) -> list[str]:
        """Remove subjects whose end month lies before the current month."""

        month = current_month(today or self._clock().date())
        expired = [s.id for s in self._subjects if s.is_expired(month)]
        if not expired:
            return []

        gone = set(expired)
        self._subjects[:] = [s for s in self._subjects if s.id not in gone]
        self._lecture_slots[:] = [s for s in self._lecture_slots if s.subject_id not in gone]
        self._attendance_records[:] = [r for r in self._attendance_records if r.subject_id not in gone]
        logger.info("Removed %d expired subject(s) before %s", len(expired), month)

        if self._auth.is_authenticated:
            for subject_id in expired:
                if not self._subjects_gw.delete(subject_id):
                    logger.warning("Could not delete expired subject %s from the store", subject_id)

        self._commit(
            CacheCollection.SUBJECTS,
            CacheCollection.LECTURE_SLOTS,
            CacheCollection.ATTENDANCE_RECORDS,
        )
        return expired

    # ------------------------------------------------------------------
    # Subjects
    # ------------------------------------------------------------------
    def get_subject(self, subject_id: str) -> Optional[Subject]:
        return next((s for s in self._subjects if s.id == subject_id), None)

    def _require_subject(self, subject_id: str) -> Subject:
        subject = self.get_subject(subject_id)
        if subject is None:
            raise NotFoundError("Subject not found")
        return subject

    def _create_remote_subject(self, subject: Subject) -> Subject:
        logger.info("Creating subject %r in the store", subject.name)
        created = self._subjects_gw.create(subject)
        if created is None:
            logger.error("Store rejected subject %r", subject.name)
            raise RemoteWriteError("Failed to save subject to database. Please try again.")
        logger.info("Subject %r stored with id %s", created.name, created.id)
        return created

    def add_subject(self, subject: Subject) -> Subject:
        subject = subject.validated()
        if self._auth.is_authenticated:
            stored = self._create_remote_subject(subject)
        else:
            stored = replace(subject, id=new_local_id().value)
            logger.debug("Guest mode: subject %r kept locally as %s", stored.name, stored.id)

        self._subjects.append(stored)
        self._commit(CacheCollection.SUBJECTS)
        return stored

    def add_subject_with_slots(self, subject: Subject, slots: Sequence[LectureSlot]) -> Subject:
        subject = subject.validated()
        checked = validate_schedule(slots)

        if not self._auth.is_authenticated:
            stored = replace(subject, id=new_local_id().value)
            self._subjects.append(stored)
            self._lecture_slots.extend(
                replace(s, id=new_local_id(slot=True).value, subject_id=stored.id) for s in checked
            )
            self._commit(CacheCollection.SUBJECTS, CacheCollection.LECTURE_SLOTS)
            return stored

        stored = self._create_remote_subject(subject)
        self._subjects.append(stored)
        try:
            if checked:
                created = list(self._slots_gw.create_many([replace(s, subject_id=stored.id) for s in checked]))
                if not created:
                    logger.error("Store rejected the timetable of subject %s", stored.id)
                    raise RemoteWriteError(
                        "Subject saved, but its timetable could not be saved. Please edit the subject to try again."
                    )
                self._lecture_slots.extend(created)
        finally:
            self._commit(CacheCollection.SUBJECTS, CacheCollection.LECTURE_SLOTS)
        return stored

    def update_subject(self, subject: Subject) -> Subject:
        subject = subject.validated()
        self._require_subject(subject.id)

        if self._auth.is_authenticated:
            if not self._subjects_gw.update(subject.id, subject):
                logger.error("Store rejected update of subject %s", subject.id)
                raise RemoteWriteError("Failed to update subject in database. Please try again.")

        self._subjects[:] = [subject if s.id == subject.id else s for s in self._subjects]
        self._commit(CacheCollection.SUBJECTS)
        return subject

    def delete_subject(self, subject_id: str) -> None:
        if self._auth.is_authenticated:
            if not self._subjects_gw.delete(subject_id):
                logger.error("Store rejected deletion of subject %s", subject_id)
                raise RemoteWriteError("Failed to delete subject from database. Please try again.")

        self._subjects[:] = [s for s in self._subjects if s.id != subject_id]
        self._lecture_slots[:] = [s for s in self._lecture_slots if s.subject_id != subject_id]
        self._attendance_records[:] = [r for r in self._attendance_records if r.subject_id != subject_id]
        self._commit(
            CacheCollection.SUBJECTS,
            CacheCollection.LECTURE_SLOTS,
            CacheCollection.ATTENDANCE_RECORDS,
        )

    # ------------------------------------------------------------------
    # Lecture slots
    # ------------------------------------------------------------------
    def update_lecture_slots(self, subject_id: str, new_slots: Sequence[LectureSlot]) -> list[LectureSlot]:
        """Make ``new_slots`` the subject's weekly timetable.

        Slots keep their ids when edited, so records pointing at them stay
        linked. Unknown or empty ids are created; missing ids are deleted.
        """

        self._require_subject(subject_id)
        incoming = validate_schedule(replace(s, subject_id=subject_id) for s in new_slots)
        current = [s for s in self._lecture_slots if s.subject_id == subject_id]
        diff = diff_by_id(current, incoming)
        logger.debug(
            "Timetable of %s: %d new, %d changed, %d removed",
            subject_id,
            len(diff.to_create),
            len(diff.to_update),
            len(diff.to_delete),
        )

        remote = self._auth.is_authenticated
        try:
            for slot in diff.to_delete:
                if remote and not self._slots_gw.delete(slot.id):
                    raise RemoteWriteError("Failed to remove a lecture from the timetable. Please try again.")
                self._lecture_slots[:] = [s for s in self._lecture_slots if s.id != slot.id]

            for slot in diff.to_update:
                if remote and not self._slots_gw.update(slot.id, slot):
                    raise RemoteWriteError("Failed to update a lecture in the timetable. Please try again.")
                self._lecture_slots[:] = [slot if s.id == slot.id else s for s in self._lecture_slots]

            if diff.to_create:
                if remote:
                    created = list(self._slots_gw.create_many(diff.to_create))
                    if not created:
                        raise RemoteWriteError("Failed to add lectures to the timetable. Please try again.")
                else:
                    created = [replace(s, id=new_local_id(slot=True).value) for s in diff.to_create]
                self._lecture_slots.extend(created)
        finally:
            self._commit(CacheCollection.LECTURE_SLOTS)

        return self.get_lecture_slots_for_subject(subject_id)

    def get_lecture_slot(self, slot_id: str) -> Optional[LectureSlot]:
        return next((s for s in self._lecture_slots if s.id == slot_id), None)

    def get_lecture_slots_for_date(self, date: "str | date_type") -> list[LectureSlot]:
        day = Weekday.from_python_weekday(parse_iso_date(normalize_date(date)).weekday())
        return sorted((s for s in self._lecture_slots if s.day_of_week == day), key=lambda s: s.start_time)

    def get_lecture_slots_for_subject(self, subject_id: str) -> list[LectureSlot]:
        return sorted((s for s in self._lecture_slots if s.subject_id == subject_id), key=sort_key)

    def get_subject_for_slot(self, slot_id: str) -> Optional[Subject]:
        slot = self.get_lecture_slot(slot_id)
        return self.get_subject(slot.subject_id) if slot else None

    def get_attendance_for_slot(self, slot_id: str, date: "str | date_type") -> Optional[AttendanceStatus]:
        date = normalize_date(date)
        record = next(
            (r for r in self._attendance_records if r.lecture_slot_id == slot_id and r.date == date),
            None,
        )
        return record.status if record else None

    def get_todays_subjects(self, date: "str | date_type") -> list[Subject]:
        """Subjects with a lecture on ``date``; falls back to legacy weekday lists."""

        day = Weekday.from_python_weekday(parse_iso_date(normalize_date(date)).weekday())
        with_slots = {s.subject_id for s in self._lecture_slots if s.day_of_week == day}
        if with_slots:
            return [s for s in self._subjects if s.id in with_slots]
        return [s for s in self._subjects if int(day) in s.days_of_week]

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------
    def find_record(
        self, subject_id: str, date: str, lecture_slot_id: Optional[str] = None
    ) -> Optional[AttendanceRecord]:
        return next(
            (
                r
                for r in self._attendance_records
                if r.matches(subject_id=subject_id, date=date, lecture_slot_id=lecture_slot_id)
            ),
            None,
        )

    def get_status_on_date(self, subject_id: str, date: "str | date_type") -> Optional[AttendanceStatus]:
        date = normalize_date(date)
        record = self.find_record(subject_id, date) or next(
            (r for r in self._attendance_records if r.subject_id == subject_id and r.date == date),
            None,
        )
        return record.status if record else None

    def _hours_for(self, lecture_slot_id: Optional[str], existing: Optional[AttendanceRecord]) -> int:
        if existing is not None:
            return existing.hours_logged
        if lecture_slot_id:
            slot = self.get_lecture_slot(lecture_slot_id)
            if slot:
                return slot.duration_hours
        return DEFAULT_HOURS_LOGGED

    def _store_record(
        self,
        *,
        subject_id: str,
        date: str,
        lecture_slot_id: Optional[str],
        hours_logged: int,
        transition: DutyTransition,
        existing: Optional[AttendanceRecord],
        remote_call: Callable[[], Optional[AttendanceRecord]],
        failure_message: str,
    ) -> AttendanceRecord:
        if self._auth.is_authenticated:
            record = remote_call()
            if record is None:
                logger.error("Store rejected attendance for %s on %s (slot=%s)", subject_id, date, lecture_slot_id)
                raise RemoteWriteError(failure_message)
        else:
            stamp = self._clock().isoformat(timespec="seconds")
            if existing is None:
                record = AttendanceRecord(
                    id=new_local_id().value,
                    subject_id=subject_id,
                    lecture_slot_id=lecture_slot_id,
                    date=date,
                    status=transition.status,
                    hours_logged=hours_logged,
                    created_at=stamp,
                    updated_at=stamp,
                    duty_requested=transition.duty_requested,
                    duty_approved=transition.duty_approved,
                    duty_reason=transition.duty_reason,
                )
            else:
                record = transition.apply(existing, updated_at=stamp)

        for i, r in enumerate(self._attendance_records):
            if r.matches(subject_id=subject_id, date=date, lecture_slot_id=lecture_slot_id):
                self._attendance_records[i] = record
                break
        else:
            self._attendance_records.append(record)

        self._commit(CacheCollection.ATTENDANCE_RECORDS)
        return record

    def _upsert_transition(
        self,
        *,
        subject_id: str,
        date: str,
        lecture_slot_id: Optional[str],
        transition: DutyTransition,
        existing: Optional[AttendanceRecord],
        failure_message: str,
    ) -> AttendanceRecord:
        hours = self._hours_for(lecture_slot_id, existing)
        return self._store_record(
            subject_id=subject_id,
            date=date,
            lecture_slot_id=lecture_slot_id,
            hours_logged=hours,
            transition=transition,
            existing=existing,
            remote_call=lambda: self._attendance_gw.upsert(
                subject_id=subject_id,
                date=date,
                status=transition.status,
                lecture_slot_id=lecture_slot_id,
                hours_logged=hours,
                duty_requested=transition.duty_requested,
                duty_approved=transition.duty_approved,
                duty_reason=transition.duty_reason,
            ),
            failure_message=failure_message,
        )

    def mark_attendance(self, subject_id: str, date: "str | date_type", status: "str | AttendanceStatus") -> AttendanceRecord:
        """Record present/absent for a subject's legacy per-day record."""

        status = require_status(status)
        date = normalize_date(date)
        self._require_subject(subject_id)
        existing = self.find_record(subject_id, date)
        transition = duty_leave.apply_status(existing, status)
        logger.debug("Marking %s on %s -> %s", subject_id, date, status.value)
        return self._upsert_transition(
            subject_id=subject_id,
            date=date,
            lecture_slot_id=None,
            transition=transition,
            existing=existing,
            failure_message="Failed to save attendance to database. Please try again.",
        )

    def mark_lecture_attendance(
        self, lecture_slot_id: str, date: "str | date_type", status: "str | AttendanceStatus"
    ) -> AttendanceRecord:
        status = require_status(status)
        date = normalize_date(date)
        slot = self.get_lecture_slot(lecture_slot_id)
        if slot is None:
            raise NotFoundError("Lecture slot not found")
        existing = self.find_record(slot.subject_id, date, lecture_slot_id)
        transition = duty_leave.apply_status(existing, status)
        logger.debug("Marking slot %s on %s -> %s", lecture_slot_id, date, status.value)
        return self._store_record(
            subject_id=slot.subject_id,
            date=date,
            lecture_slot_id=lecture_slot_id,
            hours_logged=slot.duration_hours,
            transition=transition,
            existing=existing,
            remote_call=lambda: self._attendance_gw.upsert(
                subject_id=slot.subject_id,
                date=date,
                status=transition.status,
                lecture_slot_id=lecture_slot_id,
                hours_logged=slot.duration_hours,
                duty_requested=transition.duty_requested,
                duty_approved=transition.duty_approved,
                duty_reason=transition.duty_reason,
            ),
            failure_message="Failed to save attendance to database. Please try again.",
        )

    def mark_absent(
        self, subject_id: str, date: "str | date_type", lecture_slot_id: Optional[str] = None
    ) -> AttendanceRecord:
        date = normalize_date(date)
        self._require_subject(subject_id)
        existing = self.find_record(subject_id, date, lecture_slot_id)
        return self._upsert_transition(
            subject_id=subject_id,
            date=date,
            lecture_slot_id=lecture_slot_id,
            transition=duty_leave.mark_absent(existing),
            existing=existing,
            failure_message="Failed to save attendance to database. Please try again.",
        )

    def update_record_status(
        self, record_id: str, status: "str | AttendanceStatus", *, reason: Optional[str] = None
    ) -> AttendanceRecord:
        if not self._auth.is_authenticated:
            raise AuthenticationError("You must be logged in to update attendance")

        status = require_status(status)
        record = next((r for r in self._attendance_records if r.id == record_id), None)
        if record is None:
            raise NotFoundError("Attendance record not found")

        transition = duty_leave.apply_status(record, status)
        fields: dict[str, Any] = {
            "status": transition.status.value,
            "duty_requested": transition.duty_requested,
            "duty_approved": transition.duty_approved,
            "duty_reason": transition.duty_reason,
        }
        if reason is not None:
            fields["reason"] = reason

        if not self._attendance_gw.update(record_id, fields):
            logger.error("Store rejected status change of record %s", record_id)
            raise RemoteWriteError("Failed to update record in database. Please try again.")

        updated = transition.apply(record, updated_at=self._clock().isoformat(timespec="seconds"))
        if reason is not None:
            updated = replace(updated, reason=reason)
        self._attendance_records[:] = [updated if r.id == record_id else r for r in self._attendance_records]
        self._commit(CacheCollection.ATTENDANCE_RECORDS)
        return updated

    # ------------------------------------------------------------------
    # Duty leave
    # ------------------------------------------------------------------
    def request_duty_leave(
        self, subject_id: str, date: "str | date_type", reason: str, lecture_slot_id: Optional[str] = None
    ) -> AttendanceRecord:
        date = normalize_date(date)
        self._require_subject(subject_id)
        existing = self.find_record(subject_id, date, lecture_slot_id)
        transition = duty_leave.request(existing, reason)
        return self._upsert_transition(
            subject_id=subject_id,
            date=date,
            lecture_slot_id=lecture_slot_id,
            transition=transition,
            existing=existing,
            failure_message="Failed to request duty leave in database. Please try again.",
        )

    def approve_duty_leave(
        self, subject_id: str, date: "str | date_type", lecture_slot_id: Optional[str] = None
    ) -> AttendanceRecord:
        date = normalize_date(date)
        existing = self.find_record(subject_id, date, lecture_slot_id)
        transition = duty_leave.approve(existing)
        return self._store_record(
            subject_id=subject_id,
            date=date,
            lecture_slot_id=lecture_slot_id,
            hours_logged=existing.hours_logged,
            transition=transition,
            existing=existing,
            remote_call=lambda: self._attendance_gw.mark_duty_leave(
                subject_id=subject_id,
                date=date,
                reason=transition.duty_reason or "",
                approved=True,
                lecture_slot_id=lecture_slot_id,
            ),
            failure_message="Failed to approve duty leave in database. Please try again.",
        )

    def cancel_duty_request(
        self, subject_id: str, date: "str | date_type", lecture_slot_id: Optional[str] = None
    ) -> AttendanceRecord:
        date = normalize_date(date)
        existing = self.find_record(subject_id, date, lecture_slot_id)
        transition = duty_leave.cancel(existing)
        return self._store_record(
            subject_id=subject_id,
            date=date,
            lecture_slot_id=lecture_slot_id,
            hours_logged=existing.hours_logged,
            transition=transition,
            existing=existing,
            remote_call=lambda: self._attendance_gw.cancel_duty_leave(
                subject_id=subject_id,
                date=date,
                lecture_slot_id=lecture_slot_id,
            ),
            failure_message="Failed to cancel duty leave in database. Please try again.",
        )

    def convert_to_duty_leave(
        self, subject_id: str, date: "str | date_type", reason: str, lecture_slot_id: Optional[str] = None
    ) -> AttendanceRecord:
        """Request and immediately approve; the pending step is still recorded."""

        self.request_duty_leave(subject_id, date, reason, lecture_slot_id)
        return self.approve_duty_leave(subject_id, date, lecture_slot_id)

    def list_absent_records(self, subject_id: Optional[str] = None) -> list[AttendanceRecord]:
        """Absences not covered by an approved duty leave (pending ones included)."""

        return [
            r
            for r in self._attendance_records
            if (subject_id is None or r.subject_id == subject_id)
            and r.status == AttendanceStatus.ABSENT
            and not r.duty_approved
        ]

    def list_pending_duty_requests(self) -> list[AttendanceRecord]:
        return [r for r in self._attendance_records if duty_leave.duty_state(r) == DutyState.PENDING_DUTY]

    def list_approved_duty_leaves(self) -> list[AttendanceRecord]:
        return [r for r in self._attendance_records if r.status == AttendanceStatus.DUTY_LEAVE and r.duty_approved]

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------
    def get_subject_attendance_data(self, subject_id: str) -> SubjectAttendanceData:
        subject = self.get_subject(subject_id)
        if subject is None:
            return EMPTY_SUBJECT_DATA
        return calculator.subject_attendance_data(subject, self._attendance_records)

    def get_attendance_stats(self) -> AttendanceStats:
        return calculator.attendance_stats(self._subjects, self._attendance_records)

    def classes_per_week(self, subject_id: str) -> int:
        slots = self.get_lecture_slots_for_subject(subject_id)
        if slots:
            return len(slots)
        subject = self.get_subject(subject_id)
        return len(subject.days_of_week) if subject else 0

    def get_attendance_advice(self, subject_id: str) -> AttendanceAdvice:
        subject = self._require_subject(subject_id)
        data = calculator.subject_attendance_data(subject, self._attendance_records)
        return calculator.attendance_advice(
            attended=data.classes_attended,
            total_held=data.classes_held,
            threshold=subject.required_attendance,
            classes_per_week=self.classes_per_week(subject_id),
        )

    def get_classes_needed(self, subject_id: str) -> Optional[int]:
        """Classes to attend in a row to reach the subject's target; None if unreachable."""

        subject = self.get_subject(subject_id)
        if subject is None:
            return 0
        data = calculator.subject_attendance_data(subject, self._attendance_records)
        return calculator.classes_to_attend(data.classes_attended, data.classes_held, subject.required_attendance)

    def compute_percent_with_and_without_duty(self, subject_id: str) -> dict[str, float]:
        data = self.get_subject_attendance_data(subject_id)
        return {
            "without_duty": data.physical_attendance_percentage,
            "with_duty": data.attendance_percentage,
        }

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------
    def export_data(self) -> dict[str, Any]:
        return {
            "subjects": [s.to_json() for s in self._subjects],
            "lectureSlots": [s.to_json() for s in self._lecture_slots],
            "attendanceRecords": [r.to_json() for r in self._attendance_records],
            "exportDate": self._clock().isoformat(timespec="seconds"),
            "version": EXPORT_VERSION,
        }

    def import_data(self, data: Mapping[str, Any]) -> None:
        """Replace all data with an export.

        Signed in, the imported subjects, slots and records are written to the
        store first and the local copy only changes through the re-sync that
        follows, so nothing the store rejected is kept locally.
        """

        if data.get("version") not in (None, EXPORT_VERSION):
            logger.warning("Importing data of version %r (expected %s)", data.get("version"), EXPORT_VERSION)
        try:
            subjects = [Subject.from_json(x).validated() for x in data["subjects"]]
            slots = [LectureSlot.from_json(x).validated() for x in (data.get("lectureSlots") or [])]
            records = [AttendanceRecord.from_json(x) for x in data["attendanceRecords"]]
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid import file: {e}") from e

        known = {s.id for s in subjects}
        slots = [s for s in slots if s.subject_id in known]
        records = [r for r in records if r.subject_id in known]

        if self._auth.is_authenticated:
            try:
                self._push_import(subjects, slots, records)
            finally:
                self.sync_with_remote()
            return

        self._subjects[:] = subjects
        self._lecture_slots[:] = slots
        self._attendance_records[:] = records
        self._commit(
            CacheCollection.SUBJECTS,
            CacheCollection.LECTURE_SLOTS,
            CacheCollection.ATTENDANCE_RECORDS,
        )

    def _push_import(
        self,
        subjects: Iterable[Subject],
        slots: Sequence[LectureSlot],
        records: Iterable[AttendanceRecord],
    ) -> None:
        # Entities exported from this account keep their store ids; only those
        # the store has not seen are created.
        known_subjects = {s.id for s in self._subjects}
        known_slots = {s.id for s in self._lecture_slots}
        subject_ids: dict[str, str] = {}
        slot_ids: dict[str, str] = {}

        for subject in subjects:
            if isinstance(subject.identity, RemoteId) and subject.id in known_subjects:
                if not self._subjects_gw.update(subject.id, subject):
                    raise RemoteWriteError(f"Failed to import {subject.name!r}.")
                target_id = subject.id
            else:
                target_id = self._create_remote_subject(subject).id
            subject_ids[subject.id] = target_id

            own = [s for s in slots if s.subject_id == subject.id]
            new = []
            for s in own:
                if isinstance(s.identity, RemoteId) and s.id in known_slots:
                    if not self._slots_gw.update(s.id, replace(s, subject_id=target_id)):
                        raise RemoteWriteError(f"Failed to import the timetable of {subject.name!r}.")
                    slot_ids[s.id] = s.id
                else:
                    new.append(s)
            if new:
                stored = list(self._slots_gw.create_many([replace(s, subject_id=target_id) for s in new]))
                if len(stored) != len(new):
                    raise RemoteWriteError(f"Failed to import the timetable of {subject.name!r}.")
                slot_ids.update({old.id: created.id for old, created in zip(new, stored)})

        for r in records:
            stored_record = self._attendance_gw.upsert(
                subject_id=subject_ids[r.subject_id],
                date=r.date,
                status=r.status,
                lecture_slot_id=slot_ids.get(r.lecture_slot_id or ""),
                hours_logged=r.hours_logged,
                duty_requested=r.duty_requested,
                duty_approved=r.duty_approved,
                duty_reason=r.duty_reason,
            )
            if stored_record is None:
                raise RemoteWriteError(f"Failed to import attendance of {r.date}.")

    def clear_all_data(self) -> None:
        """Delete every subject (remotely first when signed in) and clear the cache."""

        try:
            if self._auth.is_authenticated:
                for subject in list(self._subjects):
                    if not self._subjects_gw.delete(subject.id):
                        raise RemoteWriteError(f"Failed to delete {subject.name!r} from database. Please try again.")
                    self._subjects.remove(subject)
                    self._lecture_slots[:] = [s for s in self._lecture_slots if s.subject_id != subject.id]
                    self._attendance_records[:] = [
                        r for r in self._attendance_records if r.subject_id != subject.id
                    ]
            self._subjects.clear()
            self._lecture_slots.clear()
            self._attendance_records.clear()
        finally:
            self._commit(
                CacheCollection.SUBJECTS,
                CacheCollection.LECTURE_SLOTS,
                CacheCollection.ATTENDANCE_RECORDS,
            )
