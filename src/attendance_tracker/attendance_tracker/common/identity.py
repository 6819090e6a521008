"""Local vs. server identity of entities.

Ids created while offline (guest mode) carry a reserved prefix so they can
be told apart from the opaque ids handed out by the authoritative store.
Code that needs to branch on that difference should go through
``classify_id`` and match on ``LocalId`` / ``RemoteId`` instead of poking
at string prefixes.
"""

from __future__ import annotations

import itertools
import threading
import time
from dataclasses import dataclass
from typing import Union

from ..core.constants import LOCAL_ID_PREFIX, LOCAL_SLOT_ID_PREFIX


@dataclass(frozen=True)
class LocalId:
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RemoteId:
    value: str

    def __str__(self) -> str:
        return self.value


EntityId = Union[LocalId, RemoteId]

_counter = itertools.count()
_lock = threading.Lock()


def is_local_id(raw: str | None) -> bool:
    return bool(raw) and str(raw).startswith(LOCAL_ID_PREFIX)


def classify_id(raw: str) -> EntityId:
    if is_local_id(raw):
        return LocalId(str(raw))
    return RemoteId(str(raw))


def new_local_id(*, slot: bool = False) -> LocalId:
    """Generate a fresh local id (``local_<ms>_<n>`` or ``local_slot_<ms>_<n>``).

    The counter suffix keeps ids distinct when several are minted within the
    same millisecond (e.g. the slots of one subject).
    """

    with _lock:
        seq = next(_counter)
    prefix = LOCAL_SLOT_ID_PREFIX if slot else LOCAL_ID_PREFIX
    return LocalId(f"{prefix}{int(time.time() * 1000)}_{seq}")
