"""Layout constants and the world-to-screen transform for the UI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from ..game import Bounds

Color = Tuple[int, int, int]

# Window metrics
VIEWPORT_MIN: Tuple[int, int] = (960, 540)
HUD_HEIGHT: int = 48
HUD_PADDING: int = 16

# Colors expressed as RGB tuples
COLOR_MAP: Dict[str, Color] = {
    "white": (248, 253, 255),
    "red": (255, 77, 109),
    "blue": (77, 189, 255),
    "green": (109, 255, 156),
    "yellow": (255, 230, 109),
    "any": (248, 253, 255),
}
BACKGROUND_COLOR: Color = (3, 7, 18)
WALL_COLOR: Color = (14, 21, 41)
BLOCKER_FILL: Color = (28, 32, 44)
BLOCKER_BORDER: Color = (58, 62, 74)
PORTAL_COLORS: Tuple[Color, Color] = ((117, 240, 255), (255, 117, 245))
SOURCE_COLOR: Color = (68, 243, 255)
MIRROR_COLOR: Color = (156, 224, 255)
SPLITTER_COLOR: Color = (255, 251, 156)
SELECTED_COLOR: Color = (255, 255, 255)
HIGH_CONTRAST_COLOR: Color = (204, 204, 204)
HINT_COLOR: Color = (150, 150, 160)
TEXT_COLOR: Color = (232, 236, 244)
ACCENT_COLOR: Color = (255, 94, 0)

# World-space sizes
SOURCE_RADIUS: float = 18.0
PORTAL_LINE_WIDTH: float = 4.0
TARGET_LINE_WIDTH: float = 4.0
MIRROR_WIDTH: float = 6.0
SPLITTER_WIDTH: float = 8.0
HINT_WIDTH: float = 10.0
HINT_LABEL_OFFSET: float = 70.0
LABEL_FONT_SIZE: int = 22

DRAW_ORDER = ("board", "pieces", "beams", "targets", "hint")


@dataclass(frozen=True)
class ViewTransform:
    """Uniform scale plus letterbox offset from board to screen pixels."""

    scale: float
    offset_x: float
    offset_y: float

    def to_screen(self, x: float, y: float) -> Tuple[float, float]:
        return (x * self.scale + self.offset_x, y * self.scale + self.offset_y)

    def to_world(self, x: float, y: float) -> Tuple[float, float]:
        return ((x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale)

    def length(self, value: float, minimum: int = 1) -> int:
        return max(minimum, int(round(value * self.scale)))


def compute_view(bounds: Bounds, size: Tuple[int, int]) -> ViewTransform:
    """Fit the whole board into ``size`` keeping the aspect ratio."""

    width, height = size
    scale = min(width / bounds.width, height / bounds.height)
    offset_x = (width - bounds.width * scale) / 2
    offset_y = (height - bounds.height * scale) / 2
    return ViewTransform(scale=scale, offset_x=offset_x, offset_y=offset_y)


def beam_color(name: str) -> Color:
    return COLOR_MAP.get(name, COLOR_MAP["white"])
