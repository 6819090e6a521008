from dataclasses import dataclass

from src.attendance_tracker.attendance_tracker.common.reconcile import diff_by_id


@dataclass(frozen=True)
class Item:
    id: str
    label: str = ""


def test_three_way_diff():
    existing = [Item("A"), Item("B", "old"), Item("C")]
    incoming = [Item("B", "new"), Item("D")]

    diff = diff_by_id(existing, incoming)

    assert diff.to_delete == [Item("A"), Item("C")]
    assert diff.to_update == [Item("B", "new")]
    assert diff.to_create == [Item("D")]


def test_identical_collections_only_update():
    items = [Item("A"), Item("B")]
    diff = diff_by_id(items, items)
    assert diff.to_create == [] and diff.to_delete == []
    assert diff.to_update == items


def test_empty_incoming_deletes_everything():
    diff = diff_by_id([Item("A")], [])
    assert diff.to_delete == [Item("A")]
    assert not diff.to_create and not diff.to_update


def test_repeated_incoming_id_collapses_to_last():
    diff = diff_by_id([], [Item("X", "first"), Item("X", "second")])
    assert diff.to_create == [Item("X", "second")]


def test_items_without_id_are_always_created():
    diff = diff_by_id([Item("A")], [Item("A"), Item(""), Item("")])
    assert diff.to_create == [Item(""), Item("")]
    assert diff.to_update == [Item("A")]


def test_empty_diff():
    assert diff_by_id([], []).is_empty
