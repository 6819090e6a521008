from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()
"""Marks an upsert argument that should leave the stored column untouched."""


class AttendanceGateway(Protocol):
    def list_for_subjects(self, subject_ids: Sequence[str]) -> Sequence[AttendanceRecord]:
        """Raises RemoteGatewayError when the store cannot be read."""

        raise NotImplementedError

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
        """Insert or update the record for (subject, slot, date).

        Duty columns left as UNSET keep their stored value on update.
        Returns the stored record, or None on failure.
        """

        raise NotImplementedError

    def mark_duty_leave(
        self,
        *,
        subject_id: str,
        date: str,
        reason: str,
        approved: bool = True,
        lecture_slot_id: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def cancel_duty_leave(
        self,
        *,
        subject_id: str,
        date: str,
        lecture_slot_id: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def update(self, record_id: str, fields: Mapping[str, Any]) -> bool:
        raise NotImplementedError
