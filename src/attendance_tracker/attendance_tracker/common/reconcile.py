from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class IdDiff(Generic[T]):
    """Result of reconciling an owned collection against its edited version."""

    to_create: list[T] = field(default_factory=list)
    to_update: list[T] = field(default_factory=list)
    to_delete: list[T] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_delete)


def diff_by_id(
    existing: Iterable[T],
    incoming: Iterable[T],
    *,
    key: Callable[[T], str] = lambda item: item.id,  # type: ignore[attr-defined]
) -> IdDiff[T]:
    """Three-way diff keyed by id.

    - ``to_delete``: existing items whose id is absent from ``incoming``
    - ``to_update``: incoming items whose id matches an existing item
    - ``to_create``: incoming items whose id matches nothing existing

    Incoming items repeating an id are collapsed, last one wins, so the result
    never carries duplicate ids. Items without an id are always creations.
    """

    existing_list = list(existing)
    existing_ids = {key(item) for item in existing_list}

    deduped: dict[str, T] = {}
    anonymous: list[T] = []
    for item in incoming:
        if key(item):
            deduped[key(item)] = item
        else:
            anonymous.append(item)
    incoming_list = list(deduped.values())
    incoming_ids = set(deduped)

    return IdDiff(
        to_create=[item for item in incoming_list if key(item) not in existing_ids] + anonymous,
        to_update=[item for item in incoming_list if key(item) in existing_ids],
        to_delete=[item for item in existing_list if key(item) not in incoming_ids],
    )
