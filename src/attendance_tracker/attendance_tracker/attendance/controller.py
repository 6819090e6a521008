from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import json_body, optional_str, read_model, required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    tracker = container.orchestrator

    @app.get("/api/attendance", endpoint="attendance_list")
    def attendance_list():
        subject_id = request.args.get("subject_id")
        day = request.args.get("date")
        records = [
            r
            for r in tracker.attendance_records
            if (not subject_id or r.subject_id == subject_id) and (not day or r.date == day)
        ]
        return jsonify([r.to_json() for r in records])

    @app.post("/api/attendance", endpoint="attendance_mark")
    def attendance_mark():
        data = json_body()
        day = required(data, "date")
        status = required(data, "status")
        slot_id = optional_str(data, "lectureSlotId")
        if slot_id:
            record = tracker.mark_lecture_attendance(slot_id, day, status)
        else:
            record = tracker.mark_attendance(required(data, "subjectId"), day, status)
        return jsonify(record.to_json())

    @app.post("/api/attendance/absent", endpoint="attendance_mark_absent")
    def attendance_mark_absent():
        data = json_body()
        record = tracker.mark_absent(
            required(data, "subjectId"), required(data, "date"), optional_str(data, "lectureSlotId")
        )
        return jsonify(record.to_json())

    @app.get("/api/attendance/absent", endpoint="attendance_absences")
    def attendance_absences():
        records = tracker.list_absent_records(request.args.get("subject_id") or None)
        return jsonify([r.to_json() for r in records])

    @app.patch("/api/attendance/<record_id>", endpoint="attendance_update_status")
    def attendance_update_status(record_id: str):
        data = json_body()
        record = tracker.update_record_status(record_id, required(data, "status"), reason=optional_str(data, "reason"))
        return jsonify(record.to_json())

    @app.post("/api/duty-leave/<action>", endpoint="duty_leave_action")
    def duty_leave_action(action: str):
        data = json_body()
        subject_id = required(data, "subjectId")
        day = required(data, "date")
        slot_id = optional_str(data, "lectureSlotId")

        if action == "request":
            record = tracker.request_duty_leave(subject_id, day, str(data.get("reason") or ""), slot_id)
        elif action == "approve":
            record = tracker.approve_duty_leave(subject_id, day, slot_id)
        elif action == "cancel":
            record = tracker.cancel_duty_request(subject_id, day, slot_id)
        elif action == "convert":
            record = tracker.convert_to_duty_leave(subject_id, day, str(data.get("reason") or ""), slot_id)
        else:
            return jsonify({"error": f"Unknown duty leave action {action!r}"}), 404
        return jsonify(record.to_json())

    @app.get("/api/duty-leave/pending", endpoint="duty_leave_pending")
    def duty_leave_pending():
        return jsonify([r.to_json() for r in tracker.list_pending_duty_requests()])

    @app.get("/api/duty-leave/approved", endpoint="duty_leave_approved")
    def duty_leave_approved():
        return jsonify([r.to_json() for r in tracker.list_approved_duty_leaves()])

    @app.get("/api/stats", endpoint="attendance_stats")
    def attendance_stats():
        return jsonify(read_model(tracker.get_attendance_stats()))
