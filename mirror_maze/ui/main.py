"""Interactive window for playing mirror maze levels with pygame."""

from __future__ import annotations

import argparse
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..game import LevelLoader, MirrorMazeGame
from ..logging_config import setup_logging
from ..progress import ProgressStore
from . import layout
from .toolkit import MirrorMazeUI, ensure_pygame

logger = logging.getLogger(__name__)

LEVEL_ENV_VAR = "MIRROR_MAZE_LEVEL_ROOT"
PROGRESS_ENV_VAR = "MIRROR_MAZE_PROGRESS_PATH"

AUTO_ADVANCE_SECONDS = 1.4
CONGRATS_DELAY_SECONDS = 0.8


@dataclass(frozen=True)
class UIDirectories:
    """Bundle with resolved paths required by the UI."""

    level_root: Path
    progress_path: Path


def _default_level_root() -> Path:
    return Path(__file__).resolve().parents[1] / "levels"


def _default_progress_path() -> Path:
    return Path.home() / ".mirror_maze" / "progress.json"


def _read_path(env_var: str, fallback: Path) -> Path:
    value = os.environ.get(env_var)
    if value:
        return Path(value).expanduser()
    return fallback


def resolve_directories(check_exists: bool = True) -> UIDirectories:
    """Resolve UI paths using environment variables.

    Parameters
    ----------
    check_exists:
        When *True*, raise :class:`FileNotFoundError` if the level directory
        does not exist. The progress file is created on first save and is
        never required to exist.
    """

    level_root = _read_path(LEVEL_ENV_VAR, _default_level_root())
    progress_path = _read_path(PROGRESS_ENV_VAR, _default_progress_path())

    if check_exists and not level_root.exists():
        raise FileNotFoundError(f"Required level directory does not exist: {level_root}")

    return UIDirectories(level_root=level_root, progress_path=progress_path)


class MirrorMazeApp:
    """Window loop: feeds frame time to the game and draws the HUD."""

    hud_background = (14, 18, 34)

    def __init__(
        self,
        screen_size: Tuple[int, int] = (1280, 768),
        *,
        directories: Optional[UIDirectories] = None,
        start_level: Optional[str] = None,
    ) -> None:
        pygame = ensure_pygame()
        pygame.init()
        pygame.display.set_caption("Mirror Maze")
        self.screen = pygame.display.set_mode(screen_size, pygame.RESIZABLE)
        self.clock = pygame.time.Clock()
        self.font = pygame.font.Font(None, 26)

        self.directories = directories or resolve_directories()
        self.level_loader = LevelLoader(self.directories.level_root)
        self.level_names: List[str] = self.level_loader.available()
        if not self.level_names:
            raise RuntimeError("No levels available to load.")
        self.progress = ProgressStore.load(self.directories.progress_path)

        self.level_index = min(self.progress.current_level_index, len(self.level_names) - 1)
        if start_level is not None:
            if start_level not in self.level_names:
                raise ValueError(f"Unknown level: {start_level}")
            self.level_index = self.level_names.index(start_level)

        self.game: Optional[MirrorMazeGame] = None
        self.ui: Optional[MirrorMazeUI] = None
        self.advance_in: Optional[float] = None
        self.show_congrats = False
        self.last_time = time.perf_counter()
        self.start_level(self.level_index)

    # ------------------------------------------------------------------
    # Level handling
    def _board_surface(self):
        width, height = self.screen.get_size()
        return self.screen.subsurface((0, layout.HUD_HEIGHT, width, max(1, height - layout.HUD_HEIGHT)))

    def start_level(self, index: int, *, force_fresh: bool = False) -> None:
        self.level_index = index
        level = self.level_loader.load(self.level_names[index])
        self.game = MirrorMazeGame(level, progress=self.progress, force_fresh=force_fresh)
        if self.ui is None:
            self.ui = MirrorMazeUI(self.game, surface=self._board_surface())
        else:
            self.ui.attach(self.game)
        self.advance_in = None
        self.show_congrats = False
        logger.info("Starting level %s (%d/%d)", level.id, index + 1, len(self.level_names))
        self.progress.current_level_index = index
        self.progress.save()

    def next_level(self) -> None:
        if self.game is None or not self.game.level_completed:
            return
        if self.level_index < len(self.level_names) - 1:
            self.start_level(self.level_index + 1)
        else:
            self.show_congrats = True

    def _on_frame_events(self, completed: bool) -> None:
        if completed and self.advance_in is None:
            last = self.level_index == len(self.level_names) - 1
            self.advance_in = CONGRATS_DELAY_SECONDS if last else AUTO_ADVANCE_SECONDS

    def _tick_auto_advance(self, delta: float) -> None:
        if self.advance_in is None:
            return
        self.advance_in -= delta
        if self.advance_in <= 0:
            self.advance_in = None
            self.next_level()

    def _toggle_setting(self, name: str) -> None:
        settings = self.progress.settings
        setattr(settings, name, not getattr(settings, name))
        self.progress.save()

    # ------------------------------------------------------------------
    # Drawing
    def _hud_text(self) -> str:
        assert self.game is not None
        level = self.game.level
        counts = self.game.piece_counts()
        minutes, seconds = divmod(int(self.game.timer), 60)
        text = (
            f"{level.id}. {level.name}   Mirrors: {counts['mirror']} | "
            f"Splitters: {counts['splitter']}   {minutes:02d}:{seconds:02d}"
        )
        best = self.progress.best_times.get(level.id)
        if best is not None:
            text += f"   Best: {best:.2f}s"
        if self.show_congrats:
            text += "   All levels solved!"
        elif self.game.level_completed:
            text += "   Level complete"
        elif self.game.hint_unlocked:
            text += "   Hint available (H)"
        return text

    def draw(self) -> None:
        pygame = ensure_pygame()
        assert self.ui is not None
        width, _ = self.screen.get_size()
        pygame.draw.rect(self.screen, self.hud_background, (0, 0, width, layout.HUD_HEIGHT))
        label = self.font.render(self._hud_text(), True, layout.TEXT_COLOR)
        self.screen.blit(label, (layout.HUD_PADDING, (layout.HUD_HEIGHT - label.get_height()) // 2))
        self.ui.render()
        pygame.display.flip()

    # ------------------------------------------------------------------
    # Main loop
    def handle_event(self, event) -> bool:
        """Handle app level shortcuts; return False when the app should quit."""

        pygame = ensure_pygame()
        assert self.ui is not None
        if event.type == pygame.QUIT:
            return False
        if event.type == pygame.VIDEORESIZE:
            self.screen = pygame.display.set_mode(event.size, pygame.RESIZABLE)
            self.ui.resize(self._board_surface())
            return True
        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                if self.show_congrats:
                    self.show_congrats = False
                    return True
                return False
            if event.key == pygame.K_n:
                self.next_level()
                return True
            if event.key == pygame.K_c:
                self._toggle_setting("high_contrast")
                return True
            if event.key == pygame.K_m:
                self._toggle_setting("sound")
                return True
            if event.key == pygame.K_p:
                self._toggle_setting("reduced_motion")
                return True
        self.ui.process_events([event])
        return True

    def run(self) -> None:
        pygame = ensure_pygame()
        running = True
        while running:
            now = time.perf_counter()
            delta = now - self.last_time
            self.last_time = now
            for event in pygame.event.get():
                if not self.handle_event(event):
                    running = False
                    break
            assert self.game is not None
            was_completed = self.game.level_completed
            self.game.advance(delta)
            self._on_frame_events(self.game.level_completed and not was_completed)
            self._tick_auto_advance(delta)
            self.draw()
            self.clock.tick(60)
        self.progress.save()
        pygame.quit()


def run(directories: Optional[UIDirectories] = None, start_level: Optional[str] = None) -> None:
    """Entry point helper that instantiates and runs the UI."""

    app = MirrorMazeApp(directories=directories, start_level=start_level)
    app.run()


def bootstrap_directories() -> UIDirectories:
    """Return resolved directories and print a short bootstrap message."""

    directories = resolve_directories()
    message = (
        "Mirror Maze UI bootstrap\n"
        f"  levels:   {directories.level_root}\n"
        f"  progress: {directories.progress_path}\n"
        f"Set {LEVEL_ENV_VAR} or {PROGRESS_ENV_VAR} to use custom locations."
    )
    print(message)
    return directories


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Mirror Maze launcher")
    parser.add_argument(
        "--info",
        action="store_true",
        help="Print resolved resource paths and exit without launching the UI.",
    )
    parser.add_argument("--list-levels", action="store_true", help="List available levels and exit.")
    parser.add_argument("--level", help="Level name to start with.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.verbose:
        setup_logging(logging.DEBUG)
    elif args.list_levels or args.info:
        setup_logging(logging.WARNING)
    else:
        setup_logging(logging.INFO)

    if args.list_levels:
        directories = resolve_directories()
        loader = LevelLoader(directories.level_root)
        print("Available levels:")
        for name in loader.available():
            level = loader.load(name)
            print(f"  {name}: {level.name} ({level.difficulty})")
        return 0

    directories = bootstrap_directories()
    if args.info:
        return 0
    run(directories, start_level=args.level)
    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation entry point
    raise SystemExit(main())
