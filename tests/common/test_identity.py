from src.attendance_tracker.attendance_tracker.common.identity import LocalId, RemoteId, classify_id, is_local_id, new_local_id


def test_local_ids_are_unique_within_a_burst():
    ids = {new_local_id().value for _ in range(1000)}
    assert len(ids) == 1000


def test_slot_ids_use_their_own_prefix():
    slot_id = new_local_id(slot=True)
    assert slot_id.value.startswith("local_slot_")
    assert is_local_id(slot_id.value)


def test_classify_id():
    assert isinstance(classify_id("local_1700000000000_3"), LocalId)
    assert classify_id("3f2b9c1e-1111-2222-3333-444455556666") == RemoteId("3f2b9c1e-1111-2222-3333-444455556666")
    assert not is_local_id("")
    assert not is_local_id(None)
