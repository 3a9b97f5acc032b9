"""Core game logic for the mirror maze puzzle."""

from __future__ import annotations

import copy
import itertools
import json
import logging
import math
from collections import defaultdict, deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Deque, Dict, Iterable, List, Optional, Sequence

from .geometry import (
    EPSILON,
    Rect,
    Vector,
    clamp,
    distance_to_segment,
    intersect_ray_circle,
    intersect_ray_rect,
    intersect_ray_rect_boundary,
    intersect_ray_segment,
    normalize,
    nudge,
    reflect,
    segment_hits_circle,
)
from .history import HistoryManager, Snapshot
from .progress import ProgressStore

logger = logging.getLogger(__name__)


SIM_DT = 1.0 / 60.0
MAX_RAYS = 256
MAX_BOUNCES = 64
NUDGE_DISTANCE = 0.01
PROJECTION_DISTANCE = 9999.0
HINT_IDLE_SECONDS = 120.0
HINT_DURATION = 3.0
ROTATION_SNAP_DEGREES = 15.0
PIECE_PICK_RADIUS = 20.0
PIECE_WALL_INSET = 8.0

PIECE_TYPES = ("mirror", "splitter")
BEAM_COLORS = ("white", "red", "blue", "green", "yellow")
ANY_COLOR = "any"

_SPAWN_X = 140.0
_SPAWN_TOP = 150.0
_SPAWN_GAP = 90.0


def _check_color(color: str, *, allow_any: bool = False) -> str:
    color = str(color).lower()
    allowed = BEAM_COLORS + ((ANY_COLOR,) if allow_any else ())
    if color not in allowed:
        raise ValueError(f"Unknown color: {color}")
    return color


def _check_piece_type(piece_type: str) -> str:
    piece_type = str(piece_type).lower()
    if piece_type not in PIECE_TYPES:
        raise ValueError(f"Unknown piece type: {piece_type}")
    return piece_type


# ----------------------------------------------------------------------
# Static level description
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class PieceDimensions:
    """Sizes shared by every level of a pack."""

    mirror_length: float = 120.0
    splitter_length: float = 120.0
    filter_size: float = 60.0
    portal_radius: float = 36.0
    target_radius: float = 40.0
    beam_color: str = "white"
    beam_thickness: float = 6.0


@dataclass(frozen=True)
class Bounds:
    width: float = 1920.0
    height: float = 1080.0
    wall_thickness: float = 20.0

    @property
    def playable(self) -> Rect:
        wall = self.wall_thickness
        return Rect(wall, wall, self.width - wall * 2, self.height - wall * 2)


@dataclass(frozen=True)
class LightSource:
    x: float
    y: float
    direction_deg: float = 0.0
    color: str = "white"

    @property
    def position(self) -> Vector:
        return Vector(self.x, self.y)

    @property
    def direction(self) -> Vector:
        return Vector.from_degrees(self.direction_deg)


@dataclass(frozen=True)
class ColorFilter:
    """Square tinting every beam that enters it."""

    x: float
    y: float
    color: str


@dataclass(frozen=True)
class Portal:
    """Pair of linked teleport rings."""

    a: Vector
    b: Vector


@dataclass(frozen=True)
class TargetSpec:
    x: float
    y: float
    color: str = ANY_COLOR


@dataclass(frozen=True)
class PiecePlacement:
    """Piece pose used by hints and solution files."""

    type: str
    x: float
    y: float
    angle_deg: float = 0.0


@dataclass
class Level:
    """In-memory representation of a level definition."""

    id: str
    name: str
    source: LightSource
    difficulty: str = "Unknown"
    bounds: Bounds = field(default_factory=Bounds)
    targets: List[TargetSpec] = field(default_factory=list)
    blockers: List[Rect] = field(default_factory=list)
    filters: List[ColorFilter] = field(default_factory=list)
    portals: List[Portal] = field(default_factory=list)
    available_pieces: Dict[str, int] = field(default_factory=dict)
    hint_pieces: List[PiecePlacement] = field(default_factory=list)
    dimensions: PieceDimensions = field(default_factory=PieceDimensions)

    @property
    def metadata(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "difficulty": self.difficulty,
            "dimensions": f"{int(self.bounds.width)}x{int(self.bounds.height)}",
            "pieces": dict(self.available_pieces),
        }

    def piece_length(self, piece_type: str) -> float:
        if _check_piece_type(piece_type) == "splitter":
            return self.dimensions.splitter_length
        return self.dimensions.mirror_length

    def filter_rect(self, color_filter: ColorFilter) -> Rect:
        size = self.dimensions.filter_size
        return Rect(color_filter.x - size / 2, color_filter.y - size / 2, size, size)


# ----------------------------------------------------------------------
# Dynamic scene state
# ----------------------------------------------------------------------
_piece_ids = itertools.count(1)


def next_piece_id() -> str:
    return f"piece-{next(_piece_ids)}"


@dataclass(frozen=True)
class PieceSegment:
    a: Vector
    b: Vector
    normal: Vector


@dataclass
class Piece:
    """A placeable mirror or splitter: a segment centred on (x, y)."""

    id: str
    type: str
    x: float
    y: float
    angle: float = 0.0
    length: float = 120.0

    @property
    def center(self) -> Vector:
        return Vector(self.x, self.y)

    @property
    def segment(self) -> PieceSegment:
        # Always derived from the current pose, never cached.
        half = self.length / 2
        dx = math.cos(self.angle) * half
        dy = math.sin(self.angle) * half
        a = Vector(self.x - dx, self.y - dy)
        b = Vector(self.x + dx, self.y + dy)
        normal = normalize(Vector(-(b.y - a.y), b.x - a.x))
        return PieceSegment(a=a, b=b, normal=normal)


@dataclass
class Target:
    id: str
    x: float
    y: float
    color: str = ANY_COLOR
    radius: float = 40.0
    hit_timer: float = 0.0
    is_hit: bool = False
    satisfied: bool = False
    pinged: bool = False

    @property
    def center(self) -> Vector:
        return Vector(self.x, self.y)


@dataclass(frozen=True)
class Ray:
    origin: Vector
    direction: Vector
    color: str
    bounces: int = 0


@dataclass(frozen=True)
class BeamSegment:
    """Visible stretch of beam between a ray origin and what it hit."""

    start: Vector
    end: Vector
    color: str


@dataclass
class Scene:
    """Everything the tracer and evaluator read for one level."""

    level: Level
    pieces: List[Piece] = field(default_factory=list)
    targets: List[Target] = field(default_factory=list)


def snapshot_pieces(pieces: Iterable[Piece]) -> Snapshot:
    return [
        {"id": piece.id, "type": piece.type, "x": piece.x, "y": piece.y, "angle": piece.angle}
        for piece in pieces
    ]


def revive_pieces(snapshot: Sequence[Dict[str, object]], level: Level) -> List[Piece]:
    """Rebuild live pieces from a snapshot, regenerating derived fields."""

    pieces: List[Piece] = []
    for entry in snapshot:
        piece_type = _check_piece_type(entry["type"])
        pieces.append(
            Piece(
                id=str(entry.get("id") or next_piece_id()),
                type=piece_type,
                x=float(entry["x"]),
                y=float(entry["y"]),
                angle=float(entry.get("angle", 0.0)),
                length=level.piece_length(piece_type),
            )
        )
    return pieces


def spawn_pieces(level: Level) -> List[Piece]:
    """Lay out the level's piece budget in a column near the left wall."""

    pieces: List[Piece] = []
    slot_y = _SPAWN_TOP
    for piece_type, key in (("mirror", "mirrors"), ("splitter", "splitters")):
        for _ in range(int(level.available_pieces.get(key, 0))):
            pieces.append(
                Piece(
                    id=next_piece_id(),
                    type=piece_type,
                    x=_SPAWN_X,
                    y=slot_y,
                    angle=0.0,
                    length=level.piece_length(piece_type),
                )
            )
            slot_y += _SPAWN_GAP
            if slot_y > level.bounds.height - _SPAWN_TOP:
                slot_y = _SPAWN_TOP
    return pieces


def build_targets(level: Level) -> List[Target]:
    return [
        Target(
            id=f"target-{level.id}-{index}",
            x=target_spec.x,
            y=target_spec.y,
            color=target_spec.color,
            radius=level.dimensions.target_radius,
        )
        for index, target_spec in enumerate(level.targets)
    ]


def placement_to_piece(placement: PiecePlacement, level: Level, piece_id: Optional[str] = None) -> Piece:
    return Piece(
        id=piece_id or next_piece_id(),
        type=placement.type,
        x=placement.x,
        y=placement.y,
        angle=math.radians(placement.angle_deg),
        length=level.piece_length(placement.type),
    )


# ----------------------------------------------------------------------
# Beam tracing
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class SurfaceHit:
    """Intersection candidate tagged with the kind of surface that was hit."""

    t: float
    point: Vector
    kind: str  # mirror, splitter, blocker, filter, portal, wall
    normal: Optional[Vector] = None
    color: Optional[str] = None
    exit: Optional[Vector] = None


class BeamTracer:
    """Breadth-first expansion of the source beam through a scene.

    Both caps are hard limits: at most ``max_rays`` rays are taken off the
    work queue per pass and rays deeper than ``max_bounces`` are dropped
    without emitting a segment.
    """

    def __init__(self, scene: Scene, *, max_rays: int = MAX_RAYS, max_bounces: int = MAX_BOUNCES):
        self.scene = scene
        self.max_rays = max_rays
        self.max_bounces = max_bounces
        self.rays_processed = 0
        self.rays_dropped = 0

    @property
    def level(self) -> Level:
        return self.scene.level

    def trace(self) -> List[BeamSegment]:
        level = self.level
        segments: List[BeamSegment] = []
        queue: Deque[Ray] = deque(
            [
                Ray(
                    origin=level.source.position,
                    direction=level.source.direction,
                    color=level.source.color,
                    bounces=0,
                )
            ]
        )
        self.rays_processed = 0
        self.rays_dropped = 0
        while queue and self.rays_processed < self.max_rays:
            ray = queue.popleft()
            self.rays_processed += 1
            self._cast(ray, segments, queue)

        if queue or self.rays_dropped:
            logger.debug(
                "Trace truncated: %d rays processed, %d pending, %d over bounce limit",
                self.rays_processed,
                len(queue),
                self.rays_dropped,
            )
        return segments

    def _cast(self, ray: Ray, segments: List[BeamSegment], queue: Deque[Ray]) -> None:
        if ray.bounces > self.max_bounces:
            self.rays_dropped += 1
            return

        hit = self.find_nearest_hit(ray.origin, ray.direction)
        end = hit.point if hit else self._project_to_bounds(ray.origin, ray.direction)
        segments.append(BeamSegment(start=ray.origin, end=end, color=ray.color))
        if hit is None:
            return

        direction = ray.direction
        if hit.kind == "mirror":
            reflected = reflect(direction, hit.normal)
            queue.append(self._child(end, reflected, ray.color, ray.bounces + 1))
        elif hit.kind == "splitter":
            reflected = reflect(direction, hit.normal)
            queue.append(self._child(end, reflected, ray.color, ray.bounces + 1))
            queue.append(self._child(end, direction, ray.color, ray.bounces + 1))
        elif hit.kind == "filter":
            queue.append(self._child(end, direction, hit.color or ray.color, ray.bounces))
        elif hit.kind == "portal":
            queue.append(
                Ray(
                    origin=self._portal_exit(hit.exit, direction),
                    direction=direction,
                    color=ray.color,
                    bounces=ray.bounces,
                )
            )
        # Blockers and walls absorb the beam.

    @staticmethod
    def _child(point: Vector, direction: Vector, color: str, bounces: int) -> Ray:
        return Ray(
            origin=nudge(point, direction, NUDGE_DISTANCE),
            direction=direction,
            color=color,
            bounces=bounces,
        )

    def _portal_exit(self, exit_center: Vector, direction: Vector) -> Vector:
        bounds = self.level.bounds
        offset = self.level.dimensions.portal_radius + 1
        wall = bounds.wall_thickness
        return Vector(
            clamp(exit_center.x + direction.x * offset, wall, bounds.width - wall),
            clamp(exit_center.y + direction.y * offset, wall, bounds.height - wall),
        )

    def _project_to_bounds(self, origin: Vector, direction: Vector) -> Vector:
        bounds = self.level.bounds
        return Vector(
            clamp(origin.x + direction.x * PROJECTION_DISTANCE, 0.0, bounds.width),
            clamp(origin.y + direction.y * PROJECTION_DISTANCE, 0.0, bounds.height),
        )

    def find_nearest_hit(self, origin: Vector, direction: Vector) -> Optional[SurfaceHit]:
        """Collect every candidate and keep the closest.

        Candidates are gathered pieces first, then blockers, filters, portals
        and finally the wall; among equal distances the earlier one wins.
        """

        level = self.level
        candidates: List[SurfaceHit] = []

        for piece in self.scene.pieces:
            segment = piece.segment
            hit = intersect_ray_segment(origin, direction, segment.a, segment.b)
            if hit:
                candidates.append(SurfaceHit(hit.t, hit.point, piece.type, normal=segment.normal))

        for blocker in level.blockers:
            hit = intersect_ray_rect(origin, direction, blocker)
            if hit:
                candidates.append(SurfaceHit(hit.t, hit.point, "blocker"))

        for color_filter in level.filters:
            hit = intersect_ray_rect(origin, direction, level.filter_rect(color_filter))
            if hit:
                candidates.append(SurfaceHit(hit.t, hit.point, "filter", color=color_filter.color))

        radius = level.dimensions.portal_radius
        for portal in level.portals:
            for entry, exit_center in ((portal.a, portal.b), (portal.b, portal.a)):
                hit = intersect_ray_circle(origin, direction, entry, radius)
                if hit:
                    candidates.append(SurfaceHit(hit.t, hit.point, "portal", exit=exit_center))

        wall = intersect_ray_rect_boundary(origin, direction, level.bounds.playable)
        if wall:
            candidates.append(SurfaceHit(wall.t, wall.point, "wall", normal=wall.normal))

        if not candidates:
            return None
        return min(candidates, key=lambda candidate: candidate.t)


def trace_beams(scene: Scene, **limits: int) -> List[BeamSegment]:
    """Trace the current scene and return every visible beam segment."""

    return BeamTracer(scene, **limits).trace()


# ----------------------------------------------------------------------
# Target evaluation
# ----------------------------------------------------------------------
def color_matches(target_color: str, beam_color: str) -> bool:
    return target_color == ANY_COLOR or target_color == beam_color


def update_targets(
    targets: Sequence[Target],
    segments: Sequence[BeamSegment],
    dt: float,
    *,
    hold_duration: float = 1.0,
) -> List[Target]:
    """Advance every target's hit timer by one tick.

    Returns the targets that were pinged for the first time this tick.
    """

    for target in targets:
        target.is_hit = False

    for segment in segments:
        for target in targets:
            if target.is_hit or not color_matches(target.color, segment.color):
                continue
            if segment_hits_circle(segment.start, segment.end, target.center, target.radius):
                target.is_hit = True

    step = dt / hold_duration if hold_duration > 0 else 1.0
    pinged: List[Target] = []
    for target in targets:
        if target.is_hit:
            target.hit_timer = min(1.0, target.hit_timer + step)
            if not target.pinged:
                target.pinged = True
                pinged.append(target)
        else:
            target.hit_timer = max(0.0, target.hit_timer - step)
            if target.hit_timer == 0.0:
                target.pinged = False
        target.satisfied = target.hit_timer >= 1.0 - EPSILON
    return pinged


def all_targets_satisfied(targets: Sequence[Target]) -> bool:
    return bool(targets) and all(target.satisfied for target in targets)


# ----------------------------------------------------------------------
# Level loading
# ----------------------------------------------------------------------
class LevelLoader:
    """Load level files stored as JSON."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def available(self) -> List[str]:
        return sorted(path.stem for path in self.root.glob("*.json"))

    def load(self, name: str) -> Level:
        path = self.root / f"{name}.json"
        if not path.exists():
            raise FileNotFoundError(path)
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Malformed level file {path}: expected an object")
        try:
            level = self._parse_level(data, default_id=name)
        except (AttributeError, KeyError, TypeError) as exc:
            raise ValueError(f"Malformed level file {path}: {exc}") from exc
        logger.info("Loaded level %s (%s)", level.id, level.name)
        return level

    def _parse_level(self, data: Dict, *, default_id: str) -> Level:
        dims = data.get("dimensions", {})
        defaults = PieceDimensions()
        dimensions = PieceDimensions(
            mirror_length=float(dims.get("mirror_length", defaults.mirror_length)),
            splitter_length=float(dims.get("splitter_length", defaults.splitter_length)),
            filter_size=float(dims.get("filter_size", defaults.filter_size)),
            portal_radius=float(dims.get("portal_radius", defaults.portal_radius)),
            target_radius=float(dims.get("target_radius", defaults.target_radius)),
            beam_color=_check_color(dims.get("beam_color", defaults.beam_color)),
            beam_thickness=float(dims.get("beam_thickness", defaults.beam_thickness)),
        )
        bounds_data = data.get("bounds", {})
        bounds = Bounds(
            width=float(bounds_data.get("width", 1920)),
            height=float(bounds_data.get("height", 1080)),
            wall_thickness=float(bounds_data.get("wall_thickness", 20)),
        )
        source = data["source"]
        level = Level(
            id=str(data.get("id", default_id)),
            name=data["name"],
            difficulty=data.get("difficulty", "Unknown"),
            source=LightSource(
                x=float(source["x"]),
                y=float(source["y"]),
                direction_deg=float(source.get("dir_deg", 0.0)),
                color=_check_color(source.get("color", dimensions.beam_color)),
            ),
            bounds=bounds,
            dimensions=dimensions,
        )
        for target in data.get("targets", []):
            level.targets.append(
                TargetSpec(
                    x=float(target["x"]),
                    y=float(target["y"]),
                    color=_check_color(target.get("color", ANY_COLOR), allow_any=True),
                )
            )
        for blocker in data.get("blockers", []):
            level.blockers.append(
                Rect(float(blocker["x"]), float(blocker["y"]), float(blocker["w"]), float(blocker["h"]))
            )
        for color_filter in data.get("filters", []):
            level.filters.append(
                ColorFilter(
                    x=float(color_filter["x"]),
                    y=float(color_filter["y"]),
                    color=_check_color(color_filter["color"]),
                )
            )
        for portal in data.get("portals", []):
            level.portals.append(
                Portal(
                    a=Vector(float(portal["a"]["x"]), float(portal["a"]["y"])),
                    b=Vector(float(portal["b"]["x"]), float(portal["b"]["y"])),
                )
            )
        level.available_pieces = {
            str(key): int(value) for key, value in data.get("available_pieces", {}).items()
        }
        level.hint_pieces = [parse_placement(hint) for hint in data.get("hint_pieces", [])]
        return level


def parse_placement(data: Dict[str, object]) -> PiecePlacement:
    return PiecePlacement(
        type=_check_piece_type(data["type"]),
        x=float(data["x"]),
        y=float(data["y"]),
        angle_deg=float(data.get("angle_deg", 0.0)),
    )


# ----------------------------------------------------------------------
# Simulation context
# ----------------------------------------------------------------------
@dataclass
class SimulationFrame:
    """Result of a single fixed simulation step."""

    tick: int
    segments: List[BeamSegment] = field(default_factory=list)
    events: Dict[str, List[Dict[str, object]]] = field(default_factory=dict)


@dataclass
class ActiveHint:
    piece: Piece
    remaining: float
    label: Optional[str] = None


class MirrorMazeGame:
    """Owns one level's mutable state and advances it in fixed steps."""

    def __init__(
        self,
        level: Level,
        *,
        progress: Optional[ProgressStore] = None,
        hold_duration: float = 1.0,
        force_fresh: bool = False,
    ):
        self.level = level
        self.progress = progress
        self.hold_duration = hold_duration
        self.history = HistoryManager()
        self.reset(force_fresh=force_fresh)

    # ------------------------------------------------------------------
    # Lifecycle
    def reset(self, force_fresh: bool = False) -> None:
        saved = None if force_fresh or self.progress is None else self.progress.placement_for(self.level.id)
        pieces: List[Piece] = []
        if saved:
            try:
                pieces = revive_pieces(saved, self.level)
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("Discarding saved placement for level %s: %s", self.level.id, exc)
        if not pieces:
            pieces = spawn_pieces(self.level)
        self.scene = Scene(level=self.level, pieces=pieces, targets=build_targets(self.level))
        self.history.clear()
        self.beam_segments: List[BeamSegment] = []
        self.tick = 0
        self.timer = 0.0
        self.accumulator = 0.0
        self.level_completed = False
        self.completion_time: Optional[float] = None
        self.new_best_time = False
        self.idle_seconds = 0.0
        self.hint_unlocked = False
        self.hint_index = 0
        self.active_hint: Optional[ActiveHint] = None
        self.selected_id: Optional[str] = pieces[0].id if pieces else None
        self.save_placement()

    @property
    def pieces(self) -> List[Piece]:
        return self.scene.pieces

    @property
    def targets(self) -> List[Target]:
        return self.scene.targets

    # ------------------------------------------------------------------
    # Simulation
    def trace(self) -> List[BeamSegment]:
        return trace_beams(self.scene)

    def evaluate(self, segments: Sequence[BeamSegment], dt: float) -> List[Target]:
        return update_targets(self.scene.targets, segments, dt, hold_duration=self.hold_duration)

    def step(self, dt: float = SIM_DT) -> SimulationFrame:
        events: Dict[str, List[Dict[str, object]]] = defaultdict(list)

        self.idle_seconds += dt
        if self.idle_seconds >= HINT_IDLE_SECONDS and not self.hint_unlocked:
            self.hint_unlocked = True
            events["hint_unlocked"].append({"tick": self.tick, "reason": "idle"})
        if self.active_hint is not None:
            self.active_hint.remaining -= dt
            if self.active_hint.remaining <= 0:
                self.active_hint = None

        if not self.level_completed:
            self.timer += dt

        self.beam_segments = self.trace()
        for target in self.evaluate(self.beam_segments, dt):
            events["pings"].append({"target": target.id, "tick": self.tick})

        if not self.level_completed and all_targets_satisfied(self.scene.targets):
            events["level_complete"].append(self._complete_level())

        frame = SimulationFrame(
            tick=self.tick,
            segments=self.beam_segments,
            events={key: list(value) for key, value in events.items() if value},
        )
        self.tick += 1
        return frame

    def advance(self, elapsed: float, dt: float = SIM_DT) -> int:
        """Feed wall-clock time into the fixed-step accumulator."""

        self.accumulator += max(0.0, elapsed)
        steps = 0
        while self.accumulator >= dt:
            self.step(dt)
            self.accumulator -= dt
            steps += 1
        return steps

    def _complete_level(self) -> Dict[str, object]:
        self.level_completed = True
        self.completion_time = round(self.timer, 2)
        snapshot = self.snapshot()
        if self.progress is not None:
            self.new_best_time = self.progress.record_best_time(self.level.id, self.timer)
            self.progress.store_placement(self.level.id, snapshot)
        logger.info("Level %s complete in %.2fs", self.level.id, self.timer)
        return {"level": self.level.id, "time": self.completion_time, "tick": self.tick}

    # ------------------------------------------------------------------
    # Placement editing
    def snapshot(self) -> Snapshot:
        return snapshot_pieces(self.scene.pieces)

    def save_placement(self) -> None:
        if self.progress is not None:
            self.progress.store_placement(self.level.id, self.snapshot())

    def restore(self, snapshot: Snapshot) -> None:
        self.scene.pieces = revive_pieces(snapshot, self.level)
        if self.selected_id is not None and self.get_piece(self.selected_id) is None:
            self.selected_id = None
        self.save_placement()

    def record_edit(self) -> None:
        self.history.record(self.snapshot())

    def commit_edit(self, before: Snapshot) -> None:
        """Push a snapshot taken before a multi-event edit such as a drag."""

        self.history.record(before)
        self.save_placement()

    def undo(self) -> bool:
        snapshot = self.history.undo(self.snapshot())
        if snapshot is None:
            return False
        self.restore(snapshot)
        self.register_interaction()
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo(self.snapshot())
        if snapshot is None:
            return False
        self.restore(snapshot)
        self.register_interaction()
        return True

    def get_piece(self, piece_id: str) -> Optional[Piece]:
        return next((piece for piece in self.scene.pieces if piece.id == piece_id), None)

    def _require_piece(self, piece_id: str) -> Piece:
        piece = self.get_piece(piece_id)
        if piece is None:
            raise KeyError(f"Unknown piece: {piece_id}")
        return piece

    def piece_at(self, point: Vector, radius: float = PIECE_PICK_RADIUS) -> Optional[Piece]:
        for piece in reversed(self.scene.pieces):
            segment = piece.segment
            if distance_to_segment(point, segment.a, segment.b) <= radius:
                return piece
        return None

    def set_piece_position(self, piece_id: str, x: float, y: float) -> Piece:
        piece = self._require_piece(piece_id)
        piece.x = float(x)
        piece.y = float(y)
        self.clamp_piece(piece)
        return piece

    def move_piece(self, piece_id: str, dx: float, dy: float, *, record: bool = True) -> Piece:
        piece = self._require_piece(piece_id)
        if record:
            self.record_edit()
        self.set_piece_position(piece_id, piece.x + dx, piece.y + dy)
        self.save_placement()
        return piece

    def rotate_piece(
        self, piece_id: str, degrees: float, snap: bool = False, *, record: bool = True
    ) -> Piece:
        piece = self._require_piece(piece_id)
        if record:
            self.record_edit()
        piece.angle += math.radians(degrees)
        if snap:
            step = math.radians(ROTATION_SNAP_DEGREES)
            piece.angle = round(piece.angle / step) * step
        self.save_placement()
        return piece

    def clamp_piece(self, piece: Piece) -> None:
        """Shift ``piece`` so its whole segment stays inside the playable area."""

        inset = self.level.bounds.wall_thickness + PIECE_WALL_INSET
        left = inset
        top = inset
        right = self.level.bounds.width - inset
        bottom = self.level.bounds.height - inset
        for _ in range(2):
            segment = piece.segment
            min_x, max_x = sorted((segment.a.x, segment.b.x))
            min_y, max_y = sorted((segment.a.y, segment.b.y))
            shift_x = 0.0
            shift_y = 0.0
            if min_x < left:
                shift_x = left - min_x
            elif max_x > right:
                shift_x = right - max_x
            if min_y < top:
                shift_y = top - min_y
            elif max_y > bottom:
                shift_y = bottom - max_y
            if not shift_x and not shift_y:
                break
            piece.x += shift_x
            piece.y += shift_y

    def apply_placements(self, placements: Iterable[PiecePlacement]) -> None:
        """Replace the live pieces with the given poses (solutions, tests)."""

        self.scene.pieces = [placement_to_piece(placement, self.level) for placement in placements]
        self.selected_id = self.scene.pieces[0].id if self.scene.pieces else None
        self.save_placement()

    # ------------------------------------------------------------------
    # Hints
    def register_interaction(self) -> None:
        self.idle_seconds = 0.0

    def request_hint(self) -> Optional[ActiveHint]:
        self.register_interaction()
        self.hint_unlocked = True
        if not self.level.hint_pieces:
            return None
        if self.hint_index >= len(self.level.hint_pieces):
            self.hint_index = 0
        template = self.level.hint_pieces[self.hint_index]
        self.hint_index += 1
        ghost = placement_to_piece(template, self.level, piece_id=f"ghost-{self.hint_index}")
        label = "Split Mirror" if template.type == "splitter" else None
        self.active_hint = ActiveHint(piece=ghost, remaining=HINT_DURATION, label=label)
        return self.active_hint

    # ------------------------------------------------------------------
    # Reporting
    def piece_counts(self) -> Dict[str, str]:
        counts = {piece_type: 0 for piece_type in PIECE_TYPES}
        for piece in self.scene.pieces:
            counts[piece.type] += 1
        return {
            "mirror": f"{counts['mirror']}/{self.level.available_pieces.get('mirrors', 0)}",
            "splitter": f"{counts['splitter']}/{self.level.available_pieces.get('splitters', 0)}",
        }

    def summary(self) -> Dict[str, object]:
        return {
            "metadata": self.level.metadata,
            "tick": self.tick,
            "timer": round(self.timer, 2),
            "completed": self.level_completed,
            "segments": [
                {"start": segment.start.as_tuple(), "end": segment.end.as_tuple(), "color": segment.color}
                for segment in self.beam_segments
            ],
            "targets": {
                target.id: {"hit_timer": round(target.hit_timer, 3), "satisfied": target.satisfied}
                for target in self.scene.targets
            },
        }


# ----------------------------------------------------------------------
# Solutions
# ----------------------------------------------------------------------
class SolutionValidator:
    """Validate that a solution file completes its level."""

    def __init__(self, level_loader: LevelLoader, solutions_root: Path):
        self.level_loader = level_loader
        self.solutions_root = Path(solutions_root)

    def load_solution(self, name: str) -> Dict:
        path = self.solutions_root / f"{name}.json"
        if not path.exists():
            raise FileNotFoundError(path)
        return json.loads(path.read_text(encoding="utf-8"))

    def apply_solution(self, game: MirrorMazeGame, solution: Dict) -> MirrorMazeGame:
        placements = [parse_placement(item) for item in solution.get("placements", [])]
        game.apply_placements(placements)
        return game

    def play(self, level_name: str, solution_name: Optional[str] = None) -> MirrorMazeGame:
        level = self.level_loader.load(level_name)
        solution = self.load_solution(solution_name or level_name)
        game = self.apply_solution(MirrorMazeGame(level, force_fresh=True), copy.deepcopy(solution))
        seconds = float(solution.get("seconds", 1.5))
        for _ in range(int(math.ceil(seconds / SIM_DT))):
            game.step()
        return game

    def validate(self, level_name: str, solution_name: Optional[str] = None) -> bool:
        return self.play(level_name, solution_name).level_completed
