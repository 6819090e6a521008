from __future__ import annotations

from flask import Flask, current_app, jsonify, request

from ..common.datetime_utils import now_local
from ..common.http import json_body, read_model
from ..core.constants import DEFAULT_REQUIRED_ATTENDANCE
from ..core.exceptions import NotFoundError, ValidationError
from ..container import Container
from ..lecture_slots.model import LectureSlot
from .model import Subject


def _subject_from_body(data: dict, *, subject_id: str = "") -> Subject:
    payload = {**data, "id": subject_id, "name": data.get("name") or ""}
    if payload.get("requiredAttendance") is None:
        payload["requiredAttendance"] = current_app.config.get("DEFAULT_REQUIRED_ATTENDANCE", DEFAULT_REQUIRED_ATTENDANCE)
    try:
        return Subject.from_json(payload)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid subject: {e}")


def _slots_from_body(data: dict, *, subject_id: str = "") -> list[LectureSlot]:
    raw = data.get("lectureSlots") or []
    if not isinstance(raw, list):
        raise ValidationError("lectureSlots must be a list")
    try:
        return [LectureSlot.from_json({**item, "subjectId": subject_id}) for item in raw]
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid lecture slot: {e}")


def register(app: Flask, container: Container) -> None:
    tracker = container.orchestrator

    def subject_view(subject: Subject) -> dict:
        return {
            **subject.to_json(),
            "lectureSlots": [s.to_json() for s in tracker.get_lecture_slots_for_subject(subject.id)],
            "attendance": read_model(tracker.get_subject_attendance_data(subject.id)),
        }

    def require_subject(subject_id: str) -> Subject:
        subject = tracker.get_subject(subject_id)
        if subject is None:
            raise NotFoundError("Subject not found")
        return subject

    @app.get("/api/subjects", endpoint="subjects_list")
    def subjects_list():
        return jsonify([subject_view(s) for s in tracker.subjects])

    @app.post("/api/subjects", endpoint="subjects_create")
    def subjects_create():
        data = json_body()
        subject = _subject_from_body(data)
        slots = _slots_from_body(data)
        if slots:
            created = tracker.add_subject_with_slots(subject, slots)
        else:
            created = tracker.add_subject(subject)
        return jsonify(subject_view(created)), 201

    @app.get("/api/subjects/<subject_id>", endpoint="subjects_get")
    def subjects_get(subject_id: str):
        return jsonify(subject_view(require_subject(subject_id)))

    @app.put("/api/subjects/<subject_id>", endpoint="subjects_update")
    def subjects_update(subject_id: str):
        require_subject(subject_id)
        updated = tracker.update_subject(_subject_from_body(json_body(), subject_id=subject_id))
        return jsonify(subject_view(updated))

    @app.delete("/api/subjects/<subject_id>", endpoint="subjects_delete")
    def subjects_delete(subject_id: str):
        require_subject(subject_id)
        tracker.delete_subject(subject_id)
        return "", 204

    @app.get("/api/subjects/<subject_id>/slots", endpoint="subjects_slots")
    def subjects_slots(subject_id: str):
        require_subject(subject_id)
        return jsonify([s.to_json() for s in tracker.get_lecture_slots_for_subject(subject_id)])

    @app.put("/api/subjects/<subject_id>/slots", endpoint="subjects_slots_update")
    def subjects_slots_update(subject_id: str):
        require_subject(subject_id)
        slots = tracker.update_lecture_slots(subject_id, _slots_from_body(json_body(), subject_id=subject_id))
        return jsonify([s.to_json() for s in slots])

    @app.get("/api/subjects/<subject_id>/advice", endpoint="subjects_advice")
    def subjects_advice(subject_id: str):
        require_subject(subject_id)
        return jsonify(
            {
                "advice": read_model(tracker.get_attendance_advice(subject_id)),
                "classesNeeded": tracker.get_classes_needed(subject_id),
                "percentages": tracker.compute_percent_with_and_without_duty(subject_id),
            }
        )

    @app.get("/api/schedule", endpoint="schedule_for_date")
    def schedule_for_date():
        day = request.args.get("date") or now_local().date().isoformat()
        slots = tracker.get_lecture_slots_for_date(day)
        return jsonify(
            {
                "date": day,
                "subjects": [s.to_json() for s in tracker.get_todays_subjects(day)],
                "lectures": [
                    {**slot.to_json(), "status": _status_value(tracker.get_attendance_for_slot(slot.id, day))}
                    for slot in slots
                ],
            }
        )


def _status_value(status):
    return status.value if status is not None else None
