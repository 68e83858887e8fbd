"""Line style domain model."""

from dataclasses import dataclass
from enum import Enum

from transit_bridge.domain.errors import InvalidArgumentError

BLACK = 0xFF000000
DKGRAY = 0xFF444444
GRAY = 0xFF888888
WHITE = 0xFFFFFFFF
RED = 0xFFFF0000
BLUE = 0xFF0000FF


class Shape(Enum):
    """Badge shape used to draw a line label."""

    RECT = "rect"
    ROUNDED = "rounded"
    CIRCLE = "circle"


def parse_color(color: str) -> int:
    """Parse ``#rrggbb`` (opaque) or ``#aarrggbb`` into an ARGB integer."""
    if not color.startswith("#") or len(color) not in (7, 9):
        raise InvalidArgumentError(f"Unknown color: {color!r}")
    try:
        value = int(color[1:], 16)
    except ValueError as e:
        raise InvalidArgumentError(f"Unknown color: {color!r}") from e
    if len(color) == 7:
        value |= 0xFF000000
    return value


def derive_foreground_color(background_color: int) -> int:
    """Black or white, whichever reads better on the given background."""
    red = (background_color >> 16) & 0xFF
    green = (background_color >> 8) & 0xFF
    blue = background_color & 0xFF
    darkness = 1 - (0.299 * red + 0.587 * green + 0.114 * blue) / 255
    return BLACK if darkness < 0.5 else WHITE


@dataclass(frozen=True)
class Style:
    """How a line label is drawn."""

    background_color: int
    foreground_color: int
    shape: Shape = Shape.ROUNDED
    background_color2: int | None = None
    border_color: int | None = None

    @classmethod
    def with_background(cls, background_color: int, shape: Shape = Shape.ROUNDED) -> "Style":
        return cls(
            background_color=background_color,
            foreground_color=derive_foreground_color(background_color),
            shape=shape,
        )

    @property
    def has_border(self) -> bool:
        return self.border_color is not None
