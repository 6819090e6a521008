from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping, Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus
from ..core.exceptions import RemoteGatewayError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders
from ..session.context import AuthContext
from .model import AttendanceRecord
from .repository import UNSET, AttendanceGateway

logger = logging.getLogger(__name__)

_COLUMNS = (
    "r.id, r.subject_id, r.lecture_slot_id, r.date, r.status, r.hours_logged, r.created_at, "
    "r.updated_at, r.reason, r.duty_requested, r.duty_approved, r.duty_reason"
)

_UPDATABLE = {"status", "hours_logged", "reason", "duty_requested", "duty_approved", "duty_reason"}


class MySQLAttendanceGateway(AttendanceGateway):
    def __init__(self, conn_factory: DatabaseConnection, auth: AuthContext):
        self._conn_factory = conn_factory
        self._auth = auth

    def list_for_subjects(self, subject_ids: Sequence[str]) -> Sequence[AttendanceRecord]:
        if self._auth.user_id is None:
            raise RemoteGatewayError("Not signed in")
        if not subject_ids:
            return []
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM attendance_records r
                    JOIN subjects s ON s.id = r.subject_id
                    WHERE s.user_id=%s AND r.subject_id IN ({placeholders(len(subject_ids))})
                    ORDER BY r.date, r.created_at
                    """,
                    (self._auth.user_id, *subject_ids),
                )
                return [AttendanceRecord.from_row(r) for r in fetchall(cur)]
        except mysql.connector.Error as e:
            logger.error("Fetching attendance failed: %s", e)
            raise RemoteGatewayError(str(e)) from e

    def _owns(self, cur, subject_id: str) -> bool:
        cur.execute("SELECT 1 AS found FROM subjects WHERE id=%s AND user_id=%s", (subject_id, self._auth.user_id))
        return fetchone(cur) is not None

    def _select_one(self, cur, subject_id: str, date: str, lecture_slot_id: Optional[str]) -> Optional[AttendanceRecord]:
        cur.execute(
            f"""
            SELECT {_COLUMNS} FROM attendance_records r
            WHERE r.subject_id=%s AND r.slot_key=%s AND r.date=%s
            """,
            (subject_id, lecture_slot_id or "", date),
        )
        row = fetchone(cur)
        return AttendanceRecord.from_row(row) if row else None

    def upsert(
        self,
        *,
        subject_id: str,
        date: str,
        status: AttendanceStatus,
        lecture_slot_id: Optional[str] = None,
        hours_logged: int = 1,
        duty_requested: Any = UNSET,
        duty_approved: Any = UNSET,
        duty_reason: Any = UNSET,
    ) -> Optional[AttendanceRecord]:
        if self._auth.user_id is None:
            return None

        duty = {
            "duty_requested": duty_requested,
            "duty_approved": duty_approved,
            "duty_reason": duty_reason,
        }
        given = {k: v for k, v in duty.items() if v is not UNSET}

        columns = ["id", "subject_id", "lecture_slot_id", "date", "status", "hours_logged", *given]
        values = [str(uuid.uuid4()), subject_id, lecture_slot_id, date, AttendanceStatus.parse(status).value, int(hours_logged)]
        values.extend(given.values())
        updates = ["status=VALUES(status)", "hours_logged=VALUES(hours_logged)"]
        updates.extend(f"{k}=VALUES({k})" for k in given)

        try:
            with db_cursor(self._conn_factory) as (_, cur):
                if not self._owns(cur, subject_id):
                    logger.error("Refusing attendance for subject %s not owned by the user", subject_id)
                    return None
                cur.execute(
                    f"""
                    INSERT INTO attendance_records({", ".join(columns)})
                    VALUES({placeholders(len(columns))})
                    ON DUPLICATE KEY UPDATE {", ".join(updates)}
                    """,
                    tuple(values),
                )
                return self._select_one(cur, subject_id, date, lecture_slot_id)
        except mysql.connector.Error as e:
            logger.error("Upserting attendance for %s on %s failed: %s", subject_id, date, e)
            return None

    def mark_duty_leave(
        self,
        *,
        subject_id: str,
        date: str,
        reason: str,
        approved: bool = True,
        lecture_slot_id: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                existing = self._select_one(cur, subject_id, date, lecture_slot_id)
            hours = existing.hours_logged if existing else 1
        except mysql.connector.Error as e:
            logger.error("Reading attendance for %s on %s failed: %s", subject_id, date, e)
            return None
        return self.upsert(
            subject_id=subject_id,
            date=date,
            status=AttendanceStatus.DUTY_LEAVE if approved else AttendanceStatus.ABSENT,
            lecture_slot_id=lecture_slot_id,
            hours_logged=hours,
            duty_requested=True,
            duty_approved=bool(approved),
            duty_reason=reason,
        )

    def cancel_duty_leave(
        self,
        *,
        subject_id: str,
        date: str,
        lecture_slot_id: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                if not self._owns(cur, subject_id):
                    return None
                cur.execute(
                    """
                    UPDATE attendance_records
                    SET status='absent', duty_requested=0, duty_approved=0, duty_reason=NULL
                    WHERE subject_id=%s AND slot_key=%s AND date=%s
                    """,
                    (subject_id, lecture_slot_id or "", date),
                )
                return self._select_one(cur, subject_id, date, lecture_slot_id)
        except mysql.connector.Error as e:
            logger.error("Cancelling duty leave for %s on %s failed: %s", subject_id, date, e)
            return None

    def update(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update attendance columns: {sorted(unknown)}")
        if not fields:
            return True

        assignments = ", ".join(f"r.{k}=%s" for k in fields)
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    UPDATE attendance_records r
                    JOIN subjects s ON s.id = r.subject_id
                    SET {assignments}
                    WHERE r.id=%s AND s.user_id=%s
                    """,
                    (*fields.values(), record_id, self._auth.user_id),
                )
                if cur.rowcount > 0:
                    return True
                cur.execute(
                    """
                    SELECT 1 AS found FROM attendance_records r JOIN subjects s ON s.id = r.subject_id
                    WHERE r.id=%s AND s.user_id=%s
                    """,
                    (record_id, self._auth.user_id),
                )
                return fetchone(cur) is not None
        except mysql.connector.Error as e:
            logger.error("Updating attendance record %s failed: %s", record_id, e)
            return False
