"""Versioned configuration store: current snapshot plus full history.

Every mutation appends a new immutable snapshot; nothing is deleted, only
superseded. Writers are serialised with a lock and validate before the
version pointer moves, so a rejected write leaves the store untouched.
Readers take ``snapshot()`` without locking: it is a single attribute read
of an immutable object.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Generic, TypeVar

from hmpi.scoring.models import BandsSnapshot, StandardsSnapshot, WeightsSnapshot

logger = logging.getLogger(__name__)

SnapshotT = TypeVar("SnapshotT", StandardsSnapshot, WeightsSnapshot, BandsSnapshot)


class VersionedStore(Generic[SnapshotT]):
    """Append-only history of snapshots with a single-writer lock."""

    def __init__(self, history: Sequence[SnapshotT]) -> None:
        if not history:
            msg = "history must contain at least one version."
            raise ValueError(msg)
        versions = [s.version for s in history]
        if versions != list(range(1, len(history) + 1)):
            msg = f"history versions must run 1..{len(history)} without gaps, got {versions}."
            raise ValueError(msg)
        self._lock = threading.Lock()
        self._history: list[SnapshotT] = list(history)
        self._current: SnapshotT = self._history[-1]

    def snapshot(self) -> SnapshotT:
        """Return the current immutable version."""
        return self._current

    @property
    def version(self) -> int:
        return self._current.version

    def get_version(self, version: int) -> SnapshotT:
        """Return a specific historical version.

        Raises:
            KeyError: If the version was never created.
        """
        history = self._history
        if not 1 <= version <= len(history):
            msg = f"{type(self).__name__} version {version} not found."
            raise KeyError(msg)
        return history[version - 1]

    def history(self) -> list[SnapshotT]:
        """All versions, oldest first."""
        with self._lock:
            return list(self._history)

    def _commit(self, build: Callable[[SnapshotT], SnapshotT]) -> SnapshotT:
        """Build the next version from the current one and publish it.

        ``build`` receives the current snapshot and may raise; in that case
        nothing is published.
        """
        with self._lock:
            snapshot = build(self._current)
            self._history.append(snapshot)
            self._current = snapshot
        logger.info("%s advanced to version %d", type(self).__name__, snapshot.version)
        return snapshot
