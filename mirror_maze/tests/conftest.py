"""Fixtures shared by the whole test suite."""

from __future__ import annotations

import logging
from typing import Generator

import pytest


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Drop handlers installed by CLI entry points so they never outlive capsys."""

    logger = logging.getLogger("mirror_maze")
    level = logger.level
    yield
    logger.handlers.clear()
    logger.setLevel(level)
