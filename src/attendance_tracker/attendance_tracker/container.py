from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .attendance.mysql_attendance_repository import MySQLAttendanceGateway
from .attendance.repository import AttendanceGateway
from .cache.store import CacheStore, JsonFileCacheStore
from .core.constants import LOGIN_WAIT_ATTEMPTS, LOGIN_WAIT_INTERVAL_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .lecture_slots.mysql_lecture_slot_repository import MySQLLectureSlotGateway
from .lecture_slots.repository import LectureSlotGateway
from .session.context import SessionAuthContext
from .subjects.mysql_subject_repository import MySQLSubjectGateway
from .subjects.repository import SubjectGateway
from .sync.orchestrator import SyncOrchestrator


@dataclass(frozen=True)
class Container:
    auth: SessionAuthContext

    subjects_gateway: SubjectGateway
    lecture_slots_gateway: LectureSlotGateway
    attendance_gateway: AttendanceGateway
    cache: CacheStore

    orchestrator: SyncOrchestrator


def build_container(
    *,
    db_config: Mapping[str, Any],
    cache_dir: str | Path,
    login_wait_attempts: int = LOGIN_WAIT_ATTEMPTS,
    login_wait_interval: float = LOGIN_WAIT_INTERVAL_SECONDS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
    auth = SessionAuthContext()

    subjects_gateway = MySQLSubjectGateway(conn, auth)
    lecture_slots_gateway = MySQLLectureSlotGateway(conn, auth)
    attendance_gateway = MySQLAttendanceGateway(conn, auth)
    cache = JsonFileCacheStore(cache_dir)

    return wire(
        auth=auth,
        subjects_gateway=subjects_gateway,
        lecture_slots_gateway=lecture_slots_gateway,
        attendance_gateway=attendance_gateway,
        cache=cache,
        login_wait_attempts=login_wait_attempts,
        login_wait_interval=login_wait_interval,
    )


def wire(
    *,
    auth: SessionAuthContext,
    subjects_gateway: SubjectGateway,
    lecture_slots_gateway: LectureSlotGateway,
    attendance_gateway: AttendanceGateway,
    cache: CacheStore,
    **orchestrator_options: Any,
) -> Container:
    """Assemble a container from already-built collaborators (fakes in tests)."""

    orchestrator = SyncOrchestrator(
        auth=auth,
        subjects=subjects_gateway,
        lecture_slots=lecture_slots_gateway,
        attendance=attendance_gateway,
        cache=cache,
        **orchestrator_options,
    )
    return Container(
        auth=auth,
        subjects_gateway=subjects_gateway,
        lecture_slots_gateway=lecture_slots_gateway,
        attendance_gateway=attendance_gateway,
        cache=cache,
        orchestrator=orchestrator,
    )
