from __future__ import annotations

from typing import Protocol, Sequence

from .model import LectureSlot


class LectureSlotGateway(Protocol):
    def list_for_owned_subjects(self) -> Sequence[LectureSlot]:
        """All slots of the signed-in user's subjects.

        Raises RemoteGatewayError when the store cannot be read.
        """

        raise NotImplementedError

    def create_many(self, slots: Sequence[LectureSlot]) -> Sequence[LectureSlot]:
        """Insert slots, returning them with server ids (empty on failure)."""

        raise NotImplementedError

    def update(self, slot_id: str, slot: LectureSlot) -> bool:
        raise NotImplementedError

    def delete(self, slot_id: str) -> bool:
        raise NotImplementedError
