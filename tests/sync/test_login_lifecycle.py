from src.attendance_tracker.attendance_tracker.common.identity import is_local_id
from src.attendance_tracker.attendance_tracker.common.retry import WaitOutcome
from src.attendance_tracker.attendance_tracker.core.enums import CacheCollection
from src.attendance_tracker.attendance_tracker.subjects.model import Subject


def test_guest_data_is_discarded_on_login(auth, make_tracker, remote, cache):
    tracker = make_tracker()
    guest = tracker.add_subject(Subject(id="", name="Guest subject"))
    tracker.mark_attendance(guest.id, "2025-03-10", "present")
    remote.subjects["srv-subj-1"] = Subject(id="srv-subj-1", name="Server subject")

    auth.sign_in("user-1")
    outcome = tracker.on_user_login()

    assert outcome is WaitOutcome.READY
    assert [s.id for s in tracker.subjects] == ["srv-subj-1"]
    assert tracker.attendance_records == ()
    ids = [s.id for s in tracker.subjects] + [s.id for s in tracker.lecture_slots] + [r.id for r in tracker.attendance_records]
    assert not any(is_local_id(i) for i in ids)
    assert all(not is_local_id(s.id) for s in cache.load(CacheCollection.SUBJECTS))


def test_login_waits_for_session(auth, make_tracker, remote, sleeps):
    def sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) == 3:
            auth.sign_in("user-1")

    tracker = make_tracker(sleep=sleep)

    assert tracker.on_user_login() is WaitOutcome.READY
    assert sleeps == [0.2, 0.2, 0.2]
    assert remote.calls[0] == "list_subjects"


def test_login_times_out_and_skips_sync(make_tracker, remote, sleeps):
    tracker = make_tracker()

    assert tracker.on_user_login() is WaitOutcome.TIMED_OUT

    assert sleeps == [0.2] * 10
    assert remote.calls == []
    assert tracker.subjects == ()


def test_closing_abandons_login_wait(make_tracker, remote, sleeps):
    holder = {}

    def sleep(seconds):
        sleeps.append(seconds)
        holder["tracker"].close()

    tracker = make_tracker(sleep=sleep)
    holder["tracker"] = tracker

    assert tracker.on_user_login() is WaitOutcome.ABANDONED
    assert sleeps == [0.2]
    assert remote.calls == []


def test_logout_clears_memory_and_cache(auth, make_tracker, remote, cache):
    remote.subjects["srv-subj-1"] = Subject(id="srv-subj-1", name="Server subject")
    auth.sign_in("user-1")
    tracker = make_tracker()
    tracker.start()
    assert len(tracker.subjects) == 1
    assert CacheCollection.SUBJECTS in cache.blobs

    auth.sign_out()
    tracker.on_user_logout()

    assert tracker.subjects == ()
    assert cache.blobs == {}


def test_start_signed_in_replaces_stale_cache(auth, make_tracker, remote, cache):
    cache.save(CacheCollection.SUBJECTS, [Subject(id="stale", name="Stale")])
    remote.subjects["fresh"] = Subject(id="fresh", name="Fresh")
    auth.sign_in("user-1")
    snapshots = []

    tracker = make_tracker()
    tracker.subscribe(lambda t: snapshots.append((t.loading, [s.id for s in t.subjects])))
    tracker.start()

    assert snapshots[0] == (True, ["stale"])
    assert snapshots[-1] == (False, ["fresh"])
