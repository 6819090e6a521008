from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import json_body, required
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    tracker = container.orchestrator
    auth = container.auth

    def state() -> dict:
        return {
            "authenticated": auth.is_authenticated,
            "userId": auth.user_id,
            "loading": tracker.loading,
            "syncing": tracker.syncing,
            "counts": {
                "subjects": len(tracker.subjects),
                "lectureSlots": len(tracker.lecture_slots),
                "attendanceRecords": len(tracker.attendance_records),
            },
        }

    @app.get("/api/session", endpoint="session_state")
    def session_state():
        return jsonify(state())

    @app.post("/api/session/login", endpoint="session_login")
    def session_login():
        # Credentials are checked upstream; this only hands over the established identity.
        user_id = str(required(json_body(), "userId"))
        auth.sign_in(user_id)
        outcome = tracker.on_user_login()
        return jsonify({**state(), "sync": outcome.value})

    @app.post("/api/session/logout", endpoint="session_logout")
    def session_logout():
        auth.sign_out()
        tracker.on_user_logout()
        return jsonify(state())

    @app.post("/api/sync", endpoint="sync_now")
    def sync_now():
        tracker.sync_with_remote()
        return jsonify(state())

    @app.get("/api/export", endpoint="data_export")
    def data_export():
        return jsonify(tracker.export_data())

    @app.post("/api/import", endpoint="data_import")
    def data_import():
        data = json_body()
        if not data:
            raise ValidationError("Import file is empty")
        tracker.import_data(data)
        return jsonify(state())

    @app.delete("/api/data", endpoint="data_clear")
    def data_clear():
        tracker.clear_all_data()
        return jsonify(state())
