"""Simple command line demo for the mirror maze engine."""

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .game import LevelLoader, SolutionValidator
from .logging_config import setup_logging


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Play a level's reference solution headlessly.")
    parser.add_argument("level", nargs="?", default="level_01_first_light")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    package_root = Path(__file__).resolve().parent
    level_loader = LevelLoader(package_root / "levels")
    validator = SolutionValidator(level_loader, package_root / "solutions")
    game = validator.play(args.level)
    summary = game.summary()

    print("=== Mirror Maze Demo ===")
    print(f"Level: {summary['metadata']['name']} ({summary['metadata']['difficulty']})")
    print(f"Beam segments traced: {len(summary['segments'])}")
    for target_id, state in summary["targets"].items():
        status = "satisfied" if state["satisfied"] else f"{state['hit_timer']:.2f}"
        print(f"  {target_id}: {status}")
    print(f"Completed: {'yes' if summary['completed'] else 'no'} after {summary['timer']:.2f}s")
    return 0 if summary["completed"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
