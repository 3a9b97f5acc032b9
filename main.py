"""Launch the interactive mirror maze window."""

from mirror_maze.ui.main import main


if __name__ == "__main__":
    raise SystemExit(main())
