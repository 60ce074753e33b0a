"""
Callout geometry.

Callouts store position and size as percentages of the owning image.
``resolve`` is the one place those percentages become pixels; the
compositor, the PDF engine and the overlay's CSS box all go through here.
"""

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .models.callouts import Callout

Point = Tuple[float, float]

# Arrow glyph in a 100x50 box: shaft plus head, pointing right
ARROW_GLYPH: Tuple[Point, ...] = (
    (10, 20), (60, 20), (60, 10), (90, 25), (60, 40), (60, 30), (10, 30),
)
ARROW_VIEWBOX = (100.0, 50.0)

MIN_SIZE_PERCENT = 1.0

_PATH_TOKEN = re.compile(r"[A-Za-z]|[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


@dataclass(frozen=True)
class PixelRect:
    """Absolute rectangle in the target's pixel (or point) space"""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def radius(self) -> float:
        return min(self.width, self.height) / 2

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """Integer (left, top, right, bottom) for PIL drawing calls"""
        return (
            int(round(self.x)),
            int(round(self.y)),
            int(round(self.right)),
            int(round(self.bottom)),
        )

    def intersects(self, other: "PixelRect") -> bool:
        return (
            self.x < other.right and other.x < self.right
            and self.y < other.bottom and other.y < self.bottom
        )


def resolve(callout: Callout, image_width: float, image_height: float, offset: float = 0) -> PixelRect:
    """
    Convert a callout's percentage geometry to an absolute rect.

    Args:
        callout: Any callout variant
        image_width: Width of the raster (or drawing area) in target units
        image_height: Height of the raster in target units
        offset: Added to both axes when drawing into a padded canvas

    Returns:
        PixelRect in target units
    """
    return PixelRect(
        x=offset + callout.x / 100.0 * image_width,
        y=offset + callout.y / 100.0 * image_height,
        width=callout.width / 100.0 * image_width,
        height=callout.height / 100.0 * image_height,
    )


def _pct(value: float) -> str:
    return f"{round(float(value), 4):g}%"


def css_box(callout: Callout) -> Dict[str, str]:
    """CSS ``left/top/width/height`` for the live overlay (percent strings)"""
    return {
        "left": _pct(callout.x),
        "top": _pct(callout.y),
        "width": _pct(callout.width),
        "height": _pct(callout.height),
    }


def css_style(callout: Callout) -> str:
    """``css_box`` as an inline style attribute value"""
    return "; ".join(f"{k}: {v}" for k, v in css_box(callout).items())


def clamp_size(width: float, height: float) -> Tuple[float, float]:
    return (
        min(100.0, max(MIN_SIZE_PERCENT, width)),
        min(100.0, max(MIN_SIZE_PERCENT, height)),
    )


def clamp_position(x: float, y: float, width: float, height: float) -> Tuple[float, float]:
    """Keep the shape fully inside the image"""
    return (
        min(max(0.0, x), max(0.0, 100.0 - width)),
        min(max(0.0, y), max(0.0, 100.0 - height)),
    )


def polygon_points(rect: PixelRect, sides: int) -> List[Point]:
    """Regular n-gon inscribed in the rect, first vertex at the top"""
    sides = max(3, int(sides))
    cx, cy = rect.center
    r = rect.radius
    points = []
    for i in range(sides):
        angle = -math.pi / 2 + 2 * math.pi * i / sides
        points.append((cx + r * math.cos(angle), cy + r * math.sin(angle)))
    return points


def arrow_points(rect: PixelRect) -> List[Point]:
    vw, vh = ARROW_VIEWBOX
    return [
        (rect.x + px / vw * rect.width, rect.y + py / vh * rect.height)
        for px, py in ARROW_GLYPH
    ]


def parse_path(path: str) -> List[List[Point]]:
    """
    Parse SVG path data limited to M/L/Z (absolute and relative).

    Returns:
        List of subpaths, each a list of points in path units

    Raises:
        ValueError: on any other command or a dangling coordinate
    """
    tokens = _PATH_TOKEN.findall(path or "")
    subpaths: List[List[Point]] = []
    current: List[Point] = []
    command = None
    pos = (0.0, 0.0)
    i = 0

    while i < len(tokens):
        token = tokens[i]
        if token.isalpha():
            if token not in "MLZmlz":
                raise ValueError(f"Unsupported path command '{token}'")
            command = token
            i += 1
            if command in "Zz":
                if current:
                    current.append(current[0])
                    subpaths.append(current)
                    pos = current[0]
                    current = []
            continue

        if command is None or command in "Zz":
            raise ValueError("Path coordinates without a command")
        if i + 1 >= len(tokens) or tokens[i + 1].isalpha():
            raise ValueError("Path has an odd number of coordinates")

        dx, dy = float(tokens[i]), float(tokens[i + 1])
        i += 2
        if command in "ml":
            point = (pos[0] + dx, pos[1] + dy)
        else:
            point = (dx, dy)

        if command in "Mm":
            if current:
                subpaths.append(current)
            current = [point]
            # Further pairs after a moveto are implicit linetos
            command = "l" if command == "m" else "L"
        else:
            current.append(point)
        pos = point

    if current:
        subpaths.append(current)
    return subpaths


def freehand_points(callout: Callout, rect: PixelRect) -> List[List[Point]]:
    """Scale callout-local path units (a width x height box) into the rect"""
    if callout.width <= 0 or callout.height <= 0:
        raise ValueError("Freehand callout has no area")
    path = getattr(callout, "path", "")
    sx = rect.width / callout.width
    sy = rect.height / callout.height
    return [
        [(rect.x + px * sx, rect.y + py * sy) for px, py in sub]
        for sub in parse_path(path)
    ]
