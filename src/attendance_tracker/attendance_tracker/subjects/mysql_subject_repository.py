from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Optional, Sequence

import mysql.connector

from ..core.exceptions import RemoteGatewayError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..session.context import AuthContext
from .model import Subject
from .repository import SubjectGateway

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, name, initial_hours_held, initial_hours_attended, days_of_week, "
    "required_attendance, start_month, end_month"
)


def _days_column(subject: Subject) -> str:
    return ",".join(str(d) for d in subject.days_of_week)


class MySQLSubjectGateway(SubjectGateway):
    def __init__(self, conn_factory: DatabaseConnection, auth: AuthContext):
        self._conn_factory = conn_factory
        self._auth = auth

    def list_subjects(self) -> Sequence[Subject]:
        user_id = self._auth.user_id
        if user_id is None:
            raise RemoteGatewayError("Not signed in")
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"SELECT {_COLUMNS} FROM subjects WHERE user_id=%s ORDER BY created_at, name",
                    (user_id,),
                )
                return [Subject.from_row(r) for r in fetchall(cur)]
        except mysql.connector.Error as e:
            logger.error("Fetching subjects failed: %s", e)
            raise RemoteGatewayError(str(e)) from e

    def create(self, subject: Subject) -> Optional[Subject]:
        user_id = self._auth.user_id
        if user_id is None:
            return None
        stored = replace(subject, id=str(uuid.uuid4()))
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO subjects(id, user_id, name, initial_hours_held, initial_hours_attended,
                                         days_of_week, required_attendance, start_month, end_month)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        stored.id,
                        user_id,
                        stored.name,
                        stored.initial_hours_held,
                        stored.initial_hours_attended,
                        _days_column(stored),
                        stored.required_attendance,
                        stored.start_month,
                        stored.end_month,
                    ),
                )
        except mysql.connector.Error as e:
            logger.error("Inserting subject %r failed: %s", subject.name, e)
            return None
        return stored

    def update(self, subject_id: str, subject: Subject) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE subjects
                    SET name=%s, initial_hours_held=%s, initial_hours_attended=%s, days_of_week=%s,
                        required_attendance=%s, start_month=%s, end_month=%s
                    WHERE id=%s AND user_id=%s
                    """,
                    (
                        subject.name,
                        subject.initial_hours_held,
                        subject.initial_hours_attended,
                        _days_column(subject),
                        subject.required_attendance,
                        subject.start_month,
                        subject.end_month,
                        subject_id,
                        self._auth.user_id,
                    ),
                )
                if cur.rowcount > 0:
                    return True
                # MySQL reports 0 affected rows when nothing changed; tell that apart from a missing row.
                cur.execute("SELECT 1 AS found FROM subjects WHERE id=%s AND user_id=%s", (subject_id, self._auth.user_id))
                return fetchone(cur) is not None
        except mysql.connector.Error as e:
            logger.error("Updating subject %s failed: %s", subject_id, e)
            return False

    def delete(self, subject_id: str) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM subjects WHERE id=%s AND user_id=%s", (subject_id, self._auth.user_id))
                return cur.rowcount > 0
        except mysql.connector.Error as e:
            logger.error("Deleting subject %s failed: %s", subject_id, e)
            return False
