"""Example: drive the tracker without Flask or MySQL.

Runs in guest mode against a JSON cache directory, so everything stays local.
"""

import tempfile

from src.attendance_tracker.attendance_tracker.cache.store import JsonFileCacheStore
from src.attendance_tracker.attendance_tracker.core.enums import Weekday
from src.attendance_tracker.attendance_tracker.lecture_slots.model import LectureSlot
from src.attendance_tracker.attendance_tracker.session.context import SessionAuthContext
from src.attendance_tracker.attendance_tracker.subjects.model import Subject
from src.attendance_tracker.attendance_tracker.sync.orchestrator import SyncOrchestrator


class _Offline:
    """Gateways are never called while signed out."""


def main():
    offline = _Offline()
    tracker = SyncOrchestrator(
        auth=SessionAuthContext(),
        subjects=offline,
        lecture_slots=offline,
        attendance=offline,
        cache=JsonFileCacheStore(tempfile.mkdtemp(prefix="attendance_")),
    )
    tracker.start()

    maths = tracker.add_subject_with_slots(
        Subject(id="", name="Maths", initial_hours_held=20, initial_hours_attended=16),
        [LectureSlot.from_start(id="", subject_id="", weekday=Weekday.MONDAY, start_time="09:00", duration_hours=2)],
    )
    tracker.mark_attendance(maths.id, "2025-03-03", "present")
    tracker.mark_absent(maths.id, "2025-03-10")
    tracker.request_duty_leave(maths.id, "2025-03-10", "Sports meet")
    tracker.approve_duty_leave(maths.id, "2025-03-10")

    print(tracker.get_subject_attendance_data(maths.id))
    print(tracker.get_attendance_advice(maths.id).message)


if __name__ == "__main__":
    main()
