"""Mirror Maze package."""

from .game import (
    BeamSegment,
    BeamTracer,
    Level,
    LevelLoader,
    MirrorMazeGame,
    Piece,
    Scene,
    SolutionValidator,
    Target,
    trace_beams,
    update_targets,
)
from .history import HistoryManager
from .progress import ProgressStore

__all__ = [
    "BeamSegment",
    "BeamTracer",
    "HistoryManager",
    "Level",
    "LevelLoader",
    "MirrorMazeGame",
    "Piece",
    "ProgressStore",
    "Scene",
    "SolutionValidator",
    "Target",
    "trace_beams",
    "update_targets",
]
