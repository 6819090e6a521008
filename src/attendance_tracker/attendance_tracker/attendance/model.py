from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..common.identity import EntityId, classify_id
from ..core.constants import DEFAULT_HOURS_LOGGED
from ..core.enums import AttendanceStatus


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: outcome of one subject (optionally one slot) on one date.

    ``lecture_slot_id`` is None for legacy per-day records. Duty-leave fields
    follow the states described in ``attendance.duty_leave``.
    """

    id: str
    subject_id: str
    date: str
    status: AttendanceStatus
    lecture_slot_id: Optional[str] = None
    hours_logged: int = DEFAULT_HOURS_LOGGED
    created_at: str = ""
    updated_at: Optional[str] = None
    reason: Optional[str] = None
    duty_requested: bool = False
    duty_approved: bool = False
    duty_reason: Optional[str] = None

    @property
    def identity(self) -> EntityId:
        return classify_id(self.id)

    def matches(self, *, subject_id: str, date: str, lecture_slot_id: Optional[str] = None) -> bool:
        """True when this record is *the* record for that subject/slot and date."""

        if self.date != date:
            return False
        if lecture_slot_id is not None:
            return self.lecture_slot_id == lecture_slot_id
        return self.subject_id == subject_id and self.lecture_slot_id is None

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subjectId": self.subject_id,
            "lectureSlotId": self.lecture_slot_id,
            "date": self.date,
            "status": self.status.value,
            "hoursLogged": self.hours_logged,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "reason": self.reason,
            "dutyRequested": self.duty_requested,
            "dutyApproved": self.duty_approved,
            "dutyReason": self.duty_reason,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "AttendanceRecord":
        return cls(
            id=str(data["id"]),
            subject_id=str(data["subjectId"]),
            lecture_slot_id=data.get("lectureSlotId") or None,
            date=str(data["date"]),
            status=AttendanceStatus.parse(data["status"]),
            hours_logged=int(data.get("hoursLogged") or DEFAULT_HOURS_LOGGED),
            created_at=str(data.get("createdAt") or ""),
            updated_at=data.get("updatedAt"),
            reason=data.get("reason"),
            duty_requested=bool(data.get("dutyRequested", False)),
            duty_approved=bool(data.get("dutyApproved", False)),
            duty_reason=data.get("dutyReason"),
        )

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "AttendanceRecord":
        return cls(
            id=str(r["id"]),
            subject_id=str(r["subject_id"]),
            lecture_slot_id=r.get("lecture_slot_id") or None,
            date=_as_text(r["date"]) or "",
            status=AttendanceStatus.parse(r["status"]),
            hours_logged=int(r.get("hours_logged") or DEFAULT_HOURS_LOGGED),
            created_at=_as_text(r.get("created_at")) or "",
            updated_at=_as_text(r.get("updated_at")),
            reason=r.get("reason"),
            duty_requested=bool(r.get("duty_requested")),
            duty_approved=bool(r.get("duty_approved")),
            duty_reason=r.get("duty_reason"),
        )
