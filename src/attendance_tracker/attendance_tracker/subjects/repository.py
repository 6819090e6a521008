from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Subject


class SubjectGateway(Protocol):
    """Subjects in the authoritative store, scoped to the signed-in user."""

    def list_subjects(self) -> Sequence[Subject]:
        """Raises RemoteGatewayError when the store cannot be read."""

        raise NotImplementedError

    def create(self, subject: Subject) -> Optional[Subject]:
        """Insert and return the stored subject (with its server id), or None on failure."""

        raise NotImplementedError

    def update(self, subject_id: str, subject: Subject) -> bool:
        raise NotImplementedError

    def delete(self, subject_id: str) -> bool:
        """Delete the subject; its slots and records go with it."""

        raise NotImplementedError
