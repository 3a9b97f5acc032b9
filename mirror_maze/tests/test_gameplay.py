import json
import math
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mirror_maze.game import (
    HINT_DURATION,
    HINT_IDLE_SECONDS,
    MAX_BOUNCES,
    SIM_DT,
    BeamSegment,
    BeamTracer,
    Bounds,
    ColorFilter,
    LightSource,
    Level,
    LevelLoader,
    MirrorMazeGame,
    Piece,
    PiecePlacement,
    Portal,
    Scene,
    SolutionValidator,
    Target,
    TargetSpec,
    all_targets_satisfied,
    trace_beams,
    update_targets,
)
from mirror_maze.geometry import Rect, Vector
from mirror_maze.progress import ProgressStore

LEVEL_NAMES = [
    "level_01_first_light",
    "level_02_color_shift",
    "level_03_split_decision",
    "level_04_wormhole",
    "level_05_prism_finale",
]


def fixture_path(*parts: str) -> Path:
    return Path(__file__).resolve().parents[1].joinpath(*parts)


def make_level(**overrides) -> Level:
    options = dict(
        id="test",
        name="Test Bench",
        source=LightSource(x=100, y=100, direction_deg=0),
        bounds=Bounds(width=1000, height=1000, wall_thickness=20),
    )
    options.update(overrides)
    return Level(**options)


def make_piece(piece_type: str, x: float, y: float, degrees: float, piece_id: str = "p") -> Piece:
    return Piece(id=piece_id, type=piece_type, x=x, y=y, angle=math.radians(degrees), length=120)


def assert_point(vector: Vector, x: float, y: float) -> None:
    assert vector.x == pytest.approx(x, abs=0.05)
    assert vector.y == pytest.approx(y, abs=0.05)


def test_unobstructed_beam_stops_at_wall():
    segments = trace_beams(Scene(level=make_level()))

    assert len(segments) == 1
    assert_point(segments[0].start, 100, 100)
    assert_point(segments[0].end, 980, 100)
    assert segments[0].color == "white"


def test_beam_takes_source_colour():
    level = make_level(source=LightSource(x=100, y=100, direction_deg=90, color="green"))

    segments = trace_beams(Scene(level=level))

    assert [segment.color for segment in segments] == ["green"]
    assert_point(segments[0].end, 100, 980)


def test_mirror_turns_beam_downwards():
    scene = Scene(level=make_level(), pieces=[make_piece("mirror", 400, 100, 45)])

    segments = trace_beams(scene)

    assert len(segments) == 2
    assert_point(segments[0].end, 400, 100)
    assert_point(segments[1].end, 400, 980)


def test_splitter_emits_reflected_and_transmitted_beams():
    scene = Scene(level=make_level(), pieces=[make_piece("splitter", 400, 100, 45)])

    segments = trace_beams(scene)

    assert len(segments) == 3
    ends = sorted((round(s.end.x), round(s.end.y)) for s in segments[1:])
    assert ends == [(400, 980), (980, 100)]


def test_filter_recolours_beam_and_passes_it_through():
    level = make_level(filters=[ColorFilter(x=500, y=100, color="red")])

    segments = trace_beams(Scene(level=level))

    assert [segment.color for segment in segments] == ["white", "red"]
    assert_point(segments[0].end, 470, 100)
    assert_point(segments[1].end, 980, 100)


def test_blocker_absorbs_beam():
    level = make_level(blockers=[Rect(500, 50, 50, 100)])

    segments = trace_beams(Scene(level=level))

    assert len(segments) == 1
    assert_point(segments[0].end, 500, 100)


def test_portal_teleports_beam_to_partner():
    level = make_level(portals=[Portal(a=Vector(300, 100), b=Vector(700, 500))])

    segments = trace_beams(Scene(level=level))

    assert len(segments) == 2
    assert_point(segments[0].end, 264, 100)
    assert_point(segments[1].start, 737, 500)
    assert_point(segments[1].end, 980, 500)


def test_facing_mirrors_stop_at_bounce_limit():
    level = make_level(source=LightSource(x=500, y=500, direction_deg=0))
    scene = Scene(
        level=level,
        pieces=[make_piece("mirror", 300, 500, 90, "left"), make_piece("mirror", 700, 500, 90, "right")],
    )
    tracer = BeamTracer(scene)

    segments = tracer.trace()

    assert len(segments) == MAX_BOUNCES + 1
    assert tracer.rays_dropped == 1


def test_ray_budget_caps_segment_count():
    level = make_level(source=LightSource(x=500, y=500, direction_deg=0))
    scene = Scene(
        level=level,
        pieces=[make_piece("mirror", 300, 500, 90, "left"), make_piece("mirror", 700, 500, 90, "right")],
    )
    tracer = BeamTracer(scene, max_rays=10)

    assert len(tracer.trace()) == 10
    assert tracer.rays_processed == 10


def test_trace_is_deterministic():
    level = make_level(filters=[ColorFilter(x=600, y=100, color="blue")])
    scene = Scene(level=level, pieces=[make_piece("splitter", 400, 100, 45)])

    assert trace_beams(scene) == trace_beams(scene)


def test_target_needs_a_full_hold_to_be_satisfied():
    target = Target(id="t", x=500, y=100)
    beam = [BeamSegment(start=Vector(100, 100), end=Vector(980, 100), color="white")]

    pinged = update_targets([target], beam, SIM_DT)
    assert pinged == [target]
    for _ in range(58):
        assert update_targets([target], beam, SIM_DT) == []
    assert target.is_hit
    assert not target.satisfied

    update_targets([target], beam, SIM_DT)
    assert target.satisfied
    assert target.hit_timer <= 1.0


def test_target_decays_without_beam_and_ignores_wrong_colour():
    target = Target(id="t", x=500, y=100, color="red", hit_timer=1.0, satisfied=True, pinged=True)
    beam = [BeamSegment(start=Vector(100, 100), end=Vector(980, 100), color="white")]

    update_targets([target], beam, SIM_DT)

    assert not target.is_hit
    assert not target.satisfied
    assert target.hit_timer == pytest.approx(1.0 - SIM_DT)
    assert target.pinged


def test_hold_duration_scales_timer():
    target = Target(id="t", x=500, y=100)
    beam = [BeamSegment(start=Vector(100, 100), end=Vector(980, 100), color="white")]

    update_targets([target], beam, 0.25, hold_duration=0.5)

    assert target.hit_timer == pytest.approx(0.5)


def test_empty_target_list_is_never_satisfied():
    assert not all_targets_satisfied([])


def test_completion_fires_once_and_stops_timer():
    level = make_level(targets=[TargetSpec(x=500, y=100)])
    progress = ProgressStore()
    game = MirrorMazeGame(level, progress=progress)

    completions = []
    pings = []
    for _ in range(90):
        frame = game.step()
        completions.extend(frame.events.get("level_complete", []))
        pings.extend(frame.events.get("pings", []))

    assert len(completions) == 1
    assert len(pings) == 1
    assert game.level_completed
    assert game.timer == pytest.approx(1.0, abs=0.02)
    assert progress.best_times["test"] == pytest.approx(1.0, abs=0.02)
    assert game.new_best_time


def test_advance_runs_whole_fixed_steps():
    game = MirrorMazeGame(make_level())

    assert game.advance(0.04) == 2
    assert game.tick == 2
    assert game.accumulator == pytest.approx(0.04 - 2 * SIM_DT)
    assert game.advance(-1.0) == 0


def test_move_undo_redo_round_trip():
    level = make_level(available_pieces={"mirrors": 1})
    game = MirrorMazeGame(level)
    piece = game.pieces[0]
    start = (piece.x, piece.y)

    game.move_piece(piece.id, 50, 0)
    assert game.get_piece(piece.id).x == pytest.approx(start[0] + 50)

    assert game.undo()
    assert (game.get_piece(piece.id).x, game.get_piece(piece.id).y) == start

    assert game.redo()
    assert game.get_piece(piece.id).x == pytest.approx(start[0] + 50)
    assert not game.redo()


def test_rotation_snaps_to_fifteen_degrees():
    game = MirrorMazeGame(make_level(available_pieces={"mirrors": 1}))
    piece = game.pieces[0]

    game.rotate_piece(piece.id, 10, snap=True)

    assert piece.angle == pytest.approx(math.radians(15))


def test_pieces_are_clamped_inside_the_walls():
    game = MirrorMazeGame(make_level(available_pieces={"mirrors": 1}))
    piece = game.pieces[0]

    game.set_piece_position(piece.id, 0, 0)

    assert piece.x == pytest.approx(88)
    assert piece.y == pytest.approx(28)


def test_unknown_piece_raises_key_error():
    game = MirrorMazeGame(make_level())

    with pytest.raises(KeyError):
        game.move_piece("missing", 1, 1)


def test_piece_at_picks_pieces_near_their_segment():
    game = MirrorMazeGame(make_level(available_pieces={"mirrors": 1, "splitters": 1}))
    mirror, splitter = game.pieces

    assert game.piece_at(mirror.center) is mirror
    assert game.piece_at(Vector(splitter.x + 50, splitter.y + 10)) is splitter
    assert game.piece_at(Vector(800, 800)) is None


def test_spawned_pieces_follow_budget():
    game = MirrorMazeGame(make_level(available_pieces={"mirrors": 2, "splitters": 1}))

    assert [piece.type for piece in game.pieces] == ["mirror", "mirror", "splitter"]
    assert [(piece.x, piece.y) for piece in game.pieces] == [(140, 150), (140, 240), (140, 330)]
    assert game.piece_counts() == {"mirror": "2/2", "splitter": "1/1"}


def test_placements_are_restored_from_progress():
    level = make_level(available_pieces={"mirrors": 1})
    progress = ProgressStore()
    game = MirrorMazeGame(level, progress=progress)
    game.move_piece(game.pieces[0].id, 200, 100)

    resumed = MirrorMazeGame(level, progress=progress)
    fresh = MirrorMazeGame(level, progress=progress, force_fresh=True)

    assert (resumed.pieces[0].x, resumed.pieces[0].y) == (340, 250)
    assert (fresh.pieces[0].x, fresh.pieces[0].y) == (140, 150)


def test_hints_cycle_and_expire():
    hints = [
        PiecePlacement(type="mirror", x=300, y=300, angle_deg=45),
        PiecePlacement(type="splitter", x=600, y=300, angle_deg=135),
    ]
    game = MirrorMazeGame(make_level(hint_pieces=hints))

    first = game.request_hint()
    second = game.request_hint()
    third = game.request_hint()

    assert game.hint_unlocked
    assert (first.piece.x, first.label) == (300, None)
    assert (second.piece.x, second.label) == (600, "Split Mirror")
    assert third.piece.x == 300

    game.step(HINT_DURATION)
    assert game.active_hint is None


def test_idle_time_unlocks_hints():
    game = MirrorMazeGame(make_level())
    game.idle_seconds = HINT_IDLE_SECONDS - SIM_DT / 2

    frame = game.step()

    assert game.hint_unlocked
    assert "hint_unlocked" in frame.events


def test_level_pack_lists_all_levels():
    loader = LevelLoader(fixture_path("levels"))

    assert loader.available() == LEVEL_NAMES


@pytest.mark.parametrize("level_name", LEVEL_NAMES)
def test_solution_validator_completes_level(level_name: str):
    loader = LevelLoader(fixture_path("levels"))
    validator = SolutionValidator(loader, fixture_path("solutions"))

    assert validator.validate(level_name)


@pytest.mark.parametrize("level_name", LEVEL_NAMES)
def test_spawned_layout_does_not_solve_level(level_name: str):
    loader = LevelLoader(fixture_path("levels"))
    game = MirrorMazeGame(loader.load(level_name), force_fresh=True)

    for _ in range(90):
        game.step()

    assert not game.level_completed


def test_hint_pieces_match_solution_files():
    loader = LevelLoader(fixture_path("levels"))
    validator = SolutionValidator(loader, fixture_path("solutions"))

    for level_name in LEVEL_NAMES:
        level = loader.load(level_name)
        solution = validator.load_solution(level_name)
        placements = sorted((item["type"], item["x"], item["y"]) for item in solution["placements"])
        hints = sorted((hint.type, hint.x, hint.y) for hint in level.hint_pieces)
        assert placements == hints


def test_loader_rejects_missing_and_malformed_levels(tmp_path: Path):
    loader = LevelLoader(tmp_path)

    with pytest.raises(FileNotFoundError):
        loader.load("nope")

    (tmp_path / "bad_colour.json").write_text(
        json.dumps({"name": "Bad", "source": {"x": 0, "y": 0}, "targets": [{"x": 1, "y": 1, "color": "purple"}]})
    )
    with pytest.raises(ValueError):
        loader.load("bad_colour")

    (tmp_path / "no_source.json").write_text(json.dumps({"name": "Broken"}))
    with pytest.raises(ValueError):
        loader.load("no_source")


@pytest.mark.parametrize(
    "saved",
    [
        [{"x": 1, "y": 2}],
        [{"type": "prism", "x": 1, "y": 2}],
        [{"type": "mirror", "x": "left", "y": 2}],
        ["not a piece"],
    ],
)
def test_broken_saved_placement_falls_back_to_spawn(saved, tmp_path: Path):
    path = tmp_path / "progress.json"
    path.write_text(json.dumps({"placements": {"test": saved}}))
    level = make_level(available_pieces={"mirrors": 1})

    game = MirrorMazeGame(level, progress=ProgressStore.load(path))

    assert [(piece.type, piece.x, piece.y) for piece in game.pieces] == [("mirror", 140, 150)]


def test_loader_rejects_non_object_level_data(tmp_path: Path):
    loader = LevelLoader(tmp_path)
    (tmp_path / "list.json").write_text("[]")
    (tmp_path / "bad_bounds.json").write_text(
        json.dumps({"name": "Bad", "source": {"x": 0, "y": 0}, "bounds": [1, 2]})
    )
    (tmp_path / "bad_source.json").write_text(json.dumps({"name": "Bad", "source": 7}))

    for name in ("list", "bad_bounds", "bad_source"):
        with pytest.raises(ValueError):
            loader.load(name)


def test_undo_redo_walks_several_edits():
    game = MirrorMazeGame(make_level(available_pieces={"mirrors": 1}))
    piece_id = game.pieces[0].id
    original = game.snapshot()

    game.move_piece(piece_id, 30, 0)
    game.rotate_piece(piece_id, 45)
    game.move_piece(piece_id, 0, 40)
    edited = game.snapshot()

    for _ in range(3):
        assert game.undo()
    assert not game.undo()
    assert game.snapshot() == original

    for _ in range(3):
        assert game.redo()
    assert not game.redo()
    assert game.snapshot() == edited
