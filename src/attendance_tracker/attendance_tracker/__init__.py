"""Attendance Tracker package.

Tracks class attendance per subject and keeps a local cache consistent with
the authoritative MySQL store. Organized by feature modules (subjects,
lecture_slots, attendance, stats, sync, ...) with a thin Flask controller
layer on top of the sync orchestrator.
"""
