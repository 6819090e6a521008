from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Mapping, Sequence

import mysql.connector

from ..core.exceptions import RemoteGatewayError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, mysql_time_to_hhmm
from ..session.context import AuthContext
from .model import LectureSlot
from .repository import LectureSlotGateway

logger = logging.getLogger(__name__)


def _slot_from_row(r: Mapping[str, Any]) -> LectureSlot:
    row = dict(r)
    row["start_time"] = mysql_time_to_hhmm(r["start_time"])
    row["end_time"] = mysql_time_to_hhmm(r["end_time"])
    return LectureSlot.from_row(row)


class MySQLLectureSlotGateway(LectureSlotGateway):
    """Slots are reached through their subject, so every query joins on the owner."""

    def __init__(self, conn_factory: DatabaseConnection, auth: AuthContext):
        self._conn_factory = conn_factory
        self._auth = auth

    def list_for_owned_subjects(self) -> Sequence[LectureSlot]:
        user_id = self._auth.user_id
        if user_id is None:
            raise RemoteGatewayError("Not signed in")
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    SELECT ls.id, ls.subject_id, ls.day_of_week, ls.start_time, ls.end_time, ls.duration_hours
                    FROM lecture_slots ls
                    JOIN subjects s ON s.id = ls.subject_id
                    WHERE s.user_id=%s
                    ORDER BY ls.day_of_week, ls.start_time
                    """,
                    (user_id,),
                )
                return [_slot_from_row(r) for r in fetchall(cur)]
        except mysql.connector.Error as e:
            logger.error("Fetching lecture slots failed: %s", e)
            raise RemoteGatewayError(str(e)) from e

    def create_many(self, slots: Sequence[LectureSlot]) -> Sequence[LectureSlot]:
        if not slots or self._auth.user_id is None:
            return []
        stored = [replace(s, id=str(uuid.uuid4())) for s in slots]
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                owned = {s.subject_id for s in stored}
                for subject_id in owned:
                    cur.execute(
                        "SELECT 1 AS found FROM subjects WHERE id=%s AND user_id=%s",
                        (subject_id, self._auth.user_id),
                    )
                    if not cur.fetchall():
                        logger.error("Refusing to add slots to subject %s not owned by the user", subject_id)
                        return []
                cur.executemany(
                    """
                    INSERT INTO lecture_slots(id, subject_id, day_of_week, start_time, end_time, duration_hours)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    [
                        (s.id, s.subject_id, s.day_of_week, s.start_time, s.end_time, s.duration_hours)
                        for s in stored
                    ],
                )
        except mysql.connector.Error as e:
            logger.error("Inserting %d lecture slot(s) failed: %s", len(slots), e)
            return []
        return stored

    def update(self, slot_id: str, slot: LectureSlot) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE lecture_slots ls
                    JOIN subjects s ON s.id = ls.subject_id
                    SET ls.day_of_week=%s, ls.start_time=%s, ls.end_time=%s, ls.duration_hours=%s
                    WHERE ls.id=%s AND s.user_id=%s
                    """,
                    (slot.day_of_week, slot.start_time, slot.end_time, slot.duration_hours, slot_id, self._auth.user_id),
                )
                if cur.rowcount > 0:
                    return True
                cur.execute(
                    """
                    SELECT 1 AS found FROM lecture_slots ls JOIN subjects s ON s.id = ls.subject_id
                    WHERE ls.id=%s AND s.user_id=%s
                    """,
                    (slot_id, self._auth.user_id),
                )
                return bool(fetchall(cur))
        except mysql.connector.Error as e:
            logger.error("Updating lecture slot %s failed: %s", slot_id, e)
            return False

    def delete(self, slot_id: str) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    DELETE ls FROM lecture_slots ls
                    JOIN subjects s ON s.id = ls.subject_id
                    WHERE ls.id=%s AND s.user_id=%s
                    """,
                    (slot_id, self._auth.user_id),
                )
                return cur.rowcount > 0
        except mysql.connector.Error as e:
            logger.error("Deleting lecture slot %s failed: %s", slot_id, e)
            return False
