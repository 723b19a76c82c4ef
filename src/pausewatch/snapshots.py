from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from types import TracebackType
from typing import Union

from diskcache import Cache, Timeout

from pausewatch.exceptions import SnapshotError, StorageError
from pausewatch.index import IndexParser
from pausewatch.models import Generation, Snapshot

logger = logging.getLogger(__name__)

GENERATIONS: tuple[Generation, ...] = (
    Generation.CURRENT,
    Generation.PREVIOUS,
    Generation.PREVIOUS_PREVIOUS,
)
PERMISSIONS_KEY = "permissions"
_SlotValue = Union[Snapshot, str, None]
_STORAGE_ERRORS = (OSError, sqlite3.Error, Timeout)


class SnapshotStore:
    """Arena of three snapshot slots; ``_head`` marks the current one.

    Rotating moves the head forward and clears the slot it lands on, which
    held the oldest generation. That evicted value is kept until the next
    rotation so a single rotation can be rolled back.

    A slot holds either a parsed ``Snapshot`` or the raw index text it was
    loaded with; raw text is parsed on first ``get``.
    """

    def __init__(self, parser: IndexParser | None = None) -> None:
        self.parser = parser if parser is not None else IndexParser()
        self._slots: list[_SlotValue] = [None] * len(GENERATIONS)
        self._head = 0
        self._undo: tuple[int, _SlotValue] | None = None

    def _slot(self, generation: Generation) -> int:
        return (self._head - GENERATIONS.index(generation)) % len(self._slots)

    def get(self, generation: Generation) -> Snapshot | None:
        index = self._slot(generation)
        value = self._slots[index]
        if isinstance(value, str):
            value = self.parser.parse(value)
            self._slots[index] = value
        return value

    def set(self, generation: Generation, snapshot: Snapshot | str | None) -> None:
        self._slots[self._slot(generation)] = snapshot

    def text(self, generation: Generation) -> str | None:
        """Raw index text of ``generation`` without parsing it."""
        value = self._slots[self._slot(generation)]
        return value.text if isinstance(value, Snapshot) else value

    @property
    def current(self) -> Snapshot | None:
        return self.get(Generation.CURRENT)

    @property
    def previous(self) -> Snapshot | None:
        return self.get(Generation.PREVIOUS)

    @property
    def previous_previous(self) -> Snapshot | None:
        return self.get(Generation.PREVIOUS_PREVIOUS)

    @property
    def has_baseline(self) -> bool:
        return self._slots[self._slot(Generation.CURRENT)] is not None

    def rotate(self) -> None:
        undo_head = self._head
        self._head = (self._head + 1) % len(self._slots)
        self._undo = (undo_head, self._slots[self._head])
        self._slots[self._head] = None
        logger.debug("Rotated snapshot generations")

    def rollback(self) -> None:
        if self._undo is None:
            raise SnapshotError("No rotation to roll back")
        head, evicted = self._undo
        self._slots[self._head] = evicted
        self._head = head
        self._undo = None
        logger.info("Rolled back snapshot rotation")

    def ingest_current(self, text: str) -> Snapshot:
        snapshot = self.parser.parse(text)
        self.set(Generation.CURRENT, snapshot)
        return snapshot


class SnapshotStorage:
    """Persists generation texts and the permissions file under ``directory``."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._cache = Cache(directory=str(self.directory / "snapshots"))
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Cannot open snapshot storage at {self.directory}: {exc}") from exc

    def __enter__(self) -> SnapshotStorage:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._cache.close()

    def read(self, key: str) -> str | None:
        try:
            value = self._cache.get(key)
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Cannot read {key!r} from {self.directory}: {exc}") from exc
        return value if isinstance(value, str) else None

    def write(self, key: str, text: str) -> None:
        try:
            self._cache.set(key, text)
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Cannot write {key!r} to {self.directory}: {exc}") from exc

    def load(self, parser: IndexParser | None = None) -> SnapshotStore:
        """Open a store over the persisted texts; each is parsed only when read."""
        store = SnapshotStore(parser)
        for generation in GENERATIONS:
            store.set(generation, self.read(generation.value))
        return store

    def commit(self, store: SnapshotStore) -> None:
        """Write every generation in one transaction."""
        try:
            with self._cache.transact():
                for generation in GENERATIONS:
                    text = store.text(generation)
                    if text is None:
                        self._cache.delete(generation.value)
                    else:
                        self._cache.set(generation.value, text)
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Cannot commit snapshots to {self.directory}: {exc}") from exc
        logger.info("Committed snapshot generations to %s", self.directory)

    def generations(self) -> dict[str, str | None]:
        return {generation.value: self.read(generation.value) for generation in GENERATIONS}
