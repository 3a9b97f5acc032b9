"""Bounded undo/redo stacks over piece placement snapshots."""

from __future__ import annotations

import copy
from typing import Dict, List, Optional

Snapshot = List[Dict[str, object]]

HISTORY_LIMIT = 100


class HistoryManager:
    """Keeps the placements preceding each edit so they can be restored.

    ``past`` holds pre-edit snapshots, newest last. ``future`` holds the states
    that were undone, newest last. Recording a fresh edit invalidates the
    redo stack.
    """

    def __init__(self, limit: int = HISTORY_LIMIT):
        if limit < 1:
            raise ValueError(f"History limit must be positive, got {limit}")
        self.limit = limit
        self.past: List[Snapshot] = []
        self.future: List[Snapshot] = []

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)

    def clear(self) -> None:
        self.past.clear()
        self.future.clear()

    def record(self, snapshot: Snapshot) -> None:
        self.past.append(copy.deepcopy(snapshot))
        self.future.clear()
        self._trim()

    def undo(self, current: Snapshot) -> Optional[Snapshot]:
        """Return the snapshot to restore, or ``None`` when nothing is left."""

        if not self.past:
            return None
        snapshot = self.past.pop()
        self.future.append(copy.deepcopy(current))
        return snapshot

    def redo(self, current: Snapshot) -> Optional[Snapshot]:
        if not self.future:
            return None
        snapshot = self.future.pop()
        self.past.append(copy.deepcopy(current))
        self._trim()
        return snapshot

    def _trim(self) -> None:
        while len(self.past) > self.limit:
            self.past.pop(0)


__all__ = ["HISTORY_LIMIT", "HistoryManager", "Snapshot"]
