"""Pygame input handling and rendering for a single mirror maze level.

Rendering only touches a :class:`pygame.Surface`, so everything here can be
exercised headless with the SDL ``dummy`` video driver.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from ..game import MirrorMazeGame, Piece
from ..geometry import Vector
from ..progress import Settings
from . import layout


# The import is performed lazily in ``ensure_pygame`` so test environments can
# pick the SDL drivers before pygame initialises.
_PYGAME = None

ROTATE_STEP_DEGREES = 5.0
MOVE_STEP = 1.0
MOVE_STEP_FAST = 10.0


def ensure_pygame():
    global _PYGAME
    if _PYGAME is None:
        os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
        _PYGAME = __import__("pygame")
        _PYGAME.display.init()
        _PYGAME.font.init()
    return _PYGAME


@dataclass
class DragState:
    piece_id: str
    offset_x: float
    offset_y: float
    original: list


class MirrorMazeUI:
    """Translate pygame events into game edits and draw the board."""

    def __init__(
        self,
        game: MirrorMazeGame,
        *,
        surface=None,
        size: Tuple[int, int] = layout.VIEWPORT_MIN,
        use_display: bool = False,
    ) -> None:
        pygame = ensure_pygame()
        self.game = game
        self.screen = None
        if surface is None:
            if use_display:
                self.screen = pygame.display.set_mode(size)
            surface = pygame.Surface(size)
        self.surface = surface
        self.view = layout.compute_view(game.level.bounds, self.surface.get_size())
        self.dragging: Optional[DragState] = None
        self.hovered_id: Optional[str] = None
        self._font = None

    @property
    def settings(self) -> Settings:
        if self.game.progress is not None:
            return self.game.progress.settings
        return Settings()

    def resize(self, surface) -> None:
        self.surface = surface
        self.view = layout.compute_view(self.game.level.bounds, surface.get_size())

    def attach(self, game: MirrorMazeGame) -> None:
        self.game = game
        self.dragging = None
        self.hovered_id = None
        self.view = layout.compute_view(game.level.bounds, self.surface.get_size())

    # ------------------------------------------------------------------
    # Input handling
    def world_point(self, pos: Tuple[float, float]) -> Vector:
        bounds = self.game.level.bounds
        x, y = self.view.to_world(*pos)
        return Vector(min(max(x, 0.0), bounds.width), min(max(y, 0.0), bounds.height))

    def process_events(self, events: Iterable[object]) -> None:
        pygame = ensure_pygame()
        for event in events:
            if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self._begin_drag(event.pos)
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 3:
                self.dragging = None
            elif event.type == pygame.MOUSEMOTION:
                self._handle_motion(event.pos)
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                self._end_drag()
            elif event.type == pygame.MOUSEWHEEL:
                shift = bool(pygame.key.get_mods() & pygame.KMOD_SHIFT)
                self._rotate_selected(ROTATE_STEP_DEGREES if event.y > 0 else -ROTATE_STEP_DEGREES, shift)
            elif event.type == pygame.KEYDOWN:
                self._handle_key(event.key, getattr(event, "mod", 0))

    def _begin_drag(self, pos: Tuple[float, float]) -> None:
        world = self.world_point(pos)
        piece = self.game.piece_at(world)
        self.game.register_interaction()
        if piece is None:
            return
        self.game.selected_id = piece.id
        self.dragging = DragState(
            piece_id=piece.id,
            offset_x=world.x - piece.x,
            offset_y=world.y - piece.y,
            original=self.game.snapshot(),
        )

    def _handle_motion(self, pos: Tuple[float, float]) -> None:
        world = self.world_point(pos)
        if self.dragging is None:
            hover = self.game.piece_at(world)
            self.hovered_id = hover.id if hover else None
            return
        if self.game.get_piece(self.dragging.piece_id) is None:
            self.dragging = None
            return
        self.game.set_piece_position(
            self.dragging.piece_id,
            world.x - self.dragging.offset_x,
            world.y - self.dragging.offset_y,
        )
        self.game.register_interaction()

    def _end_drag(self) -> None:
        if self.dragging is not None:
            self.game.commit_edit(self.dragging.original)
        self.dragging = None
        self.hovered_id = None

    def _selected_piece(self) -> Optional[Piece]:
        if self.game.selected_id is None:
            return None
        return self.game.get_piece(self.game.selected_id)

    def _rotate_selected(self, degrees: float, snap: bool) -> None:
        piece = self._selected_piece()
        if piece is None:
            return
        self.game.rotate_piece(piece.id, degrees, snap)
        self.game.register_interaction()

    def _handle_key(self, key: int, mod: int) -> None:
        pygame = ensure_pygame()
        shift = bool(mod & pygame.KMOD_SHIFT)
        if key == pygame.K_z:
            self.game.undo()
            return
        if key == pygame.K_y:
            self.game.redo()
            return
        if key == pygame.K_h:
            self.game.request_hint()
            return
        if key == pygame.K_r:
            self.game.reset(force_fresh=True)
            self.dragging = None
            return

        piece = self._selected_piece()
        if piece is None:
            return
        if key in (pygame.K_q, pygame.K_a):
            self._rotate_selected(-ROTATE_STEP_DEGREES, shift)
        elif key in (pygame.K_e, pygame.K_d):
            self._rotate_selected(ROTATE_STEP_DEGREES, shift)
        else:
            step = MOVE_STEP_FAST if shift else MOVE_STEP
            moves = {
                pygame.K_UP: (0.0, -step),
                pygame.K_DOWN: (0.0, step),
                pygame.K_LEFT: (-step, 0.0),
                pygame.K_RIGHT: (step, 0.0),
            }
            delta = moves.get(key)
            if delta is None:
                return
            self.game.move_piece(piece.id, *delta)
            self.game.register_interaction()

    # ------------------------------------------------------------------
    # Rendering helpers
    def render(self):
        pygame = ensure_pygame()
        self.surface.fill(layout.BACKGROUND_COLOR)
        for layer in layout.DRAW_ORDER:
            if layer == "board":
                self._draw_board()
            elif layer == "pieces":
                self._draw_pieces()
            elif layer == "beams":
                self._draw_beams()
            elif layer == "targets":
                self._draw_targets()
            elif layer == "hint":
                self._draw_hint()
        if self.screen is not None:
            self.screen.blit(self.surface, (0, 0))
            pygame.display.flip()
        return self.surface

    def _rect(self, x: float, y: float, w: float, h: float):
        pygame = ensure_pygame()
        left, top = self.view.to_screen(x, y)
        return pygame.Rect(int(left), int(top), self.view.length(w), self.view.length(h))

    def _draw_board(self) -> None:
        pygame = ensure_pygame()
        level = self.game.level
        bounds = level.bounds
        wall = bounds.wall_thickness
        for rect in (
            (0, 0, bounds.width, wall),
            (0, bounds.height - wall, bounds.width, wall),
            (0, 0, wall, bounds.height),
            (bounds.width - wall, 0, wall, bounds.height),
        ):
            pygame.draw.rect(self.surface, layout.WALL_COLOR, self._rect(*rect))

        for blocker in level.blockers:
            rect = self._rect(blocker.x, blocker.y, blocker.w, blocker.h)
            pygame.draw.rect(self.surface, layout.BLOCKER_FILL, rect)
            pygame.draw.rect(self.surface, layout.BLOCKER_BORDER, rect, 1)

        for color_filter in level.filters:
            area = level.filter_rect(color_filter)
            rect = self._rect(area.x, area.y, area.w, area.h)
            color = layout.beam_color(color_filter.color)
            pygame.draw.rect(self.surface, tuple(channel // 4 for channel in color), rect)
            pygame.draw.rect(self.surface, color, rect, 1)

        radius = self.view.length(level.dimensions.portal_radius)
        width = self.view.length(layout.PORTAL_LINE_WIDTH)
        for portal in level.portals:
            for center, color in zip((portal.a, portal.b), layout.PORTAL_COLORS):
                pygame.draw.circle(self.surface, color, self.view.to_screen(center.x, center.y), radius, width)

        source = level.source
        pygame.draw.circle(
            self.surface,
            layout.SOURCE_COLOR,
            self.view.to_screen(source.x, source.y),
            self.view.length(layout.SOURCE_RADIUS),
        )

    def _piece_color(self, piece: Piece):
        selected = piece.id == self.game.selected_id
        if self.settings.high_contrast:
            return layout.SELECTED_COLOR if selected else layout.HIGH_CONTRAST_COLOR
        if selected or piece.id == self.hovered_id:
            return layout.SELECTED_COLOR
        return layout.SPLITTER_COLOR if piece.type == "splitter" else layout.MIRROR_COLOR

    def _draw_pieces(self) -> None:
        pygame = ensure_pygame()
        for piece in self.game.pieces:
            segment = piece.segment
            width = layout.SPLITTER_WIDTH if piece.type == "splitter" else layout.MIRROR_WIDTH
            pygame.draw.line(
                self.surface,
                self._piece_color(piece),
                self.view.to_screen(segment.a.x, segment.a.y),
                self.view.to_screen(segment.b.x, segment.b.y),
                self.view.length(width),
            )

    def _draw_beams(self) -> None:
        pygame = ensure_pygame()
        width = self.view.length(self.game.level.dimensions.beam_thickness)
        for segment in self.game.beam_segments:
            pygame.draw.line(
                self.surface,
                layout.beam_color(segment.color),
                self.view.to_screen(segment.start.x, segment.start.y),
                self.view.to_screen(segment.end.x, segment.end.y),
                width,
            )

    def _draw_targets(self) -> None:
        pygame = ensure_pygame()
        width = self.view.length(layout.TARGET_LINE_WIDTH)
        for target in self.game.targets:
            color = layout.beam_color(target.color)
            center = self.view.to_screen(target.x, target.y)
            radius = self.view.length(target.radius)
            if target.satisfied:
                pygame.draw.circle(self.surface, tuple(int(channel * 0.4) for channel in color), center, radius)
            pygame.draw.circle(self.surface, color, center, radius, width)
            if target.is_hit and not self.settings.reduced_motion:
                pulse = self.view.length(target.radius * (0.8 + target.hit_timer * 0.4))
                pygame.draw.circle(self.surface, color, center, pulse, 1)

    def _draw_hint(self) -> None:
        pygame = ensure_pygame()
        hint = self.game.active_hint
        if hint is None:
            return
        segment = hint.piece.segment
        pygame.draw.line(
            self.surface,
            layout.HINT_COLOR,
            self.view.to_screen(segment.a.x, segment.a.y),
            self.view.to_screen(segment.b.x, segment.b.y),
            self.view.length(layout.HINT_WIDTH),
        )
        if hint.label:
            label = self._label_font().render(hint.label, True, layout.HINT_COLOR)
            x, y = self.view.to_screen(hint.piece.x, hint.piece.y)
            offset = self.view.length(layout.HINT_LABEL_OFFSET)
            self.surface.blit(label, label.get_rect(midbottom=(int(x), int(y) - offset)))

    def _label_font(self):
        if self._font is None:
            self._font = ensure_pygame().font.Font(None, layout.LABEL_FONT_SIZE)
        return self._font


__all__ = ["MirrorMazeUI", "ensure_pygame"]
