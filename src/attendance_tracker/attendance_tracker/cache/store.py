from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Protocol, Sequence

from ..attendance.model import AttendanceRecord
from ..core.enums import CacheCollection
from ..core.exceptions import LocalPersistenceError
from ..lecture_slots.model import LectureSlot
from ..subjects.model import Subject

logger = logging.getLogger(__name__)

_DECODERS: dict[CacheCollection, Callable[[dict], Any]] = {
    CacheCollection.SUBJECTS: Subject.from_json,
    CacheCollection.LECTURE_SLOTS: LectureSlot.from_json,
    CacheCollection.ATTENDANCE_RECORDS: AttendanceRecord.from_json,
}


class CacheStore(Protocol):
    """Best-effort local snapshot of each collection.

    Writes replace a whole collection. Implementations raise
    LocalPersistenceError; callers decide whether that matters.
    """

    def load(self, collection: CacheCollection) -> list:
        raise NotImplementedError

    def save(self, collection: CacheCollection, entities: Sequence[Any]) -> None:
        raise NotImplementedError

    def clear(self, collection: CacheCollection) -> None:
        raise NotImplementedError


class JsonFileCacheStore(CacheStore):
    """One JSON file per collection under ``directory``."""

    def __init__(self, directory: str | Path):
        self._dir = Path(directory)

    def _path(self, collection: CacheCollection) -> Path:
        return self._dir / f"{collection.value}.json"

    def load(self, collection: CacheCollection) -> list:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, list):
                raise ValueError(f"expected a list, got {type(raw).__name__}")
            decode = _DECODERS[collection]
            return [decode(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise LocalPersistenceError(f"Cannot read cached {collection.value}: {e}") from e

    def save(self, collection: CacheCollection, entities: Sequence[Any]) -> None:
        path = self._path(collection)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            payload = [e.to_json() for e in entities]
            fd, tmp = tempfile.mkstemp(prefix=f".{collection.value}.", suffix=".tmp", dir=self._dir)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, ensure_ascii=False, indent=2)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise LocalPersistenceError(f"Cannot write cached {collection.value}: {e}") from e
        logger.debug("Cached %d %s", len(entities), collection.value)

    def clear(self, collection: CacheCollection) -> None:
        try:
            self._path(collection).unlink(missing_ok=True)
        except OSError as e:
            raise LocalPersistenceError(f"Cannot clear cached {collection.value}: {e}") from e


class InMemoryCacheStore(CacheStore):
    """Keeps the serialized blobs in a dict; handy for tests and throwaway sessions."""

    def __init__(self):
        self.blobs: dict[CacheCollection, str] = {}

    def load(self, collection: CacheCollection) -> list:
        blob = self.blobs.get(collection)
        if blob is None:
            return []
        try:
            return [_DECODERS[collection](item) for item in json.loads(blob)]
        except (ValueError, KeyError, TypeError) as e:
            raise LocalPersistenceError(f"Cannot read cached {collection.value}: {e}") from e

    def save(self, collection: CacheCollection, entities: Sequence[Any]) -> None:
        self.blobs[collection] = json.dumps([e.to_json() for e in entities], sort_keys=True)

    def clear(self, collection: CacheCollection) -> None:
        self.blobs.pop(collection, None)
