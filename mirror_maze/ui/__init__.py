"""User interface package for the mirror maze."""

from .main import (
    LEVEL_ENV_VAR,
    PROGRESS_ENV_VAR,
    MirrorMazeApp,
    UIDirectories,
    main,
    resolve_directories,
    run,
)
from .toolkit import MirrorMazeUI

__all__ = [
    "LEVEL_ENV_VAR",
    "PROGRESS_ENV_VAR",
    "UIDirectories",
    "MirrorMazeApp",
    "MirrorMazeUI",
    "main",
    "resolve_directories",
    "run",
]
