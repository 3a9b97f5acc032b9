"""Persistence of player progress: placements, best times and settings."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

Snapshot = List[Dict[str, object]]


@dataclass
class Settings:
    sound: bool = False
    high_contrast: bool = False
    reduced_motion: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Settings":
        return cls(
            sound=bool(data.get("sound", False)),
            high_contrast=bool(data.get("high_contrast", False)),
            reduced_motion=bool(data.get("reduced_motion", False)),
        )


@dataclass
class ProgressStore:
    """JSON backed store for everything that survives between sessions.

    ``path`` may be ``None`` for an in-memory store (used by headless runs and
    tests); :meth:`save` is then a no-op.
    """

    path: Optional[Path] = None
    current_level_index: int = 0
    best_times: Dict[str, float] = field(default_factory=dict)
    settings: Settings = field(default_factory=Settings)
    placements: Dict[str, Snapshot] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> "ProgressStore":
        path = Path(path)
        store = cls(path=path)
        if not path.exists():
            return store
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Unable to load progress from %s: %s", path, exc)
            return store
        if not isinstance(data, dict):
            logger.warning("Ignoring progress file %s: expected an object", path)
            return store

        try:
            store.current_level_index = max(0, int(data.get("current_level_index", 0) or 0))
        except (TypeError, ValueError):
            store.current_level_index = 0
        best_times = data.get("best_times") or {}
        if isinstance(best_times, dict):
            for key, value in best_times.items():
                try:
                    store.best_times[str(key)] = float(value)
                except (TypeError, ValueError):
                    logger.warning("Skipping invalid best time for level %s", key)
        settings = data.get("settings") or {}
        if isinstance(settings, dict):
            store.settings = Settings.from_dict(settings)
        placements = data.get("placements") or {}
        if isinstance(placements, dict):
            store.placements = {
                str(key): list(value)
                for key, value in placements.items()
                if isinstance(value, list)
            }
        return store

    def to_dict(self) -> Dict[str, object]:
        return {
            "current_level_index": self.current_level_index,
            "best_times": dict(self.best_times),
            "settings": asdict(self.settings),
            "placements": copy.deepcopy(self.placements),
        }

    def save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self.path.with_suffix(self.path.suffix + ".tmp")
        temporary.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        temporary.replace(self.path)

    def store_placement(self, level_id: str, snapshot: Snapshot) -> None:
        self.placements[str(level_id)] = copy.deepcopy(snapshot)
        self.save()

    def placement_for(self, level_id: str) -> Optional[Snapshot]:
        snapshot = self.placements.get(str(level_id))
        if snapshot is None:
            return None
        return copy.deepcopy(snapshot)

    def record_best_time(self, level_id: str, seconds: float) -> bool:
        """Store ``seconds`` if it beats the previous best; return True if so."""

        key = str(level_id)
        rounded = round(float(seconds), 2)
        existing = self.best_times.get(key)
        if existing is not None and existing <= rounded:
            return False
        self.best_times[key] = rounded
        self.save()
        return True


__all__ = ["ProgressStore", "Settings"]
