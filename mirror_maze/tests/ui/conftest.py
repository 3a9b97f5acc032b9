"""Shared pytest fixtures for UI tests.

The tests force pygame into a deterministic headless configuration by using
the SDL ``dummy`` video and audio drivers.  Rendering goes to off-screen
surfaces so no window is ever opened.
"""

from __future__ import annotations

import os
from typing import Generator

import pytest

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")


@pytest.fixture(scope="session")
def pygame_module() -> Generator[object, None, None]:
    pygame = pytest.importorskip("pygame")

    from mirror_maze.ui.toolkit import ensure_pygame

    ensure_pygame()
    pygame.display.set_mode((1, 1))
    try:
        yield pygame
    finally:
        pygame.quit()
