"""
Polygon mask: validation, hit-testing and rasterization in photo-pixel space.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from loguru import logger
from PIL import Image, ImageDraw

from .coords import Camera, ImageFit, Point, screen_to_image
from ..jobs.errors import InvalidMaskError

COLLINEAR_TOLERANCE_PX = 1e-6


@dataclass(frozen=True)
class MaskBounds:
    """Integer bounding box, half-open: [x0, x1) x [y0, y1)."""
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0


@dataclass(frozen=True)
class PolygonMask:
    """
    Closed polygon in photo-pixel space.

    The closing edge (last -> first) is implied. Self-intersecting outlines are
    accepted and filled even-odd.
    """
    points: Tuple[Point, ...]

    def __post_init__(self):
        points = tuple(
            p if isinstance(p, Point) else Point(float(p[0]), float(p[1]))
            for p in self.points
        )
        object.__setattr__(self, "points", points)
        _validate(points)

    @classmethod
    def from_tuples(cls, coords: Iterable[Sequence[float]]) -> "PolygonMask":
        return cls(tuple(Point(float(x), float(y)) for x, y in coords))

    @classmethod
    def from_device_points(
        cls,
        device_points: Iterable[Point],
        viewport_origin: Point,
        camera: Camera,
        pixel_density: float,
        image_fit: ImageFit,
    ) -> "PolygonMask":
        """Build a mask from pointer positions, mapping each through ``screen_to_image``."""
        return cls(tuple(
            screen_to_image(p, viewport_origin, camera, pixel_density, image_fit)
            for p in device_points
        ))

    def as_tuples(self):
        return [(p.x, p.y) for p in self.points]


def _validate(points: Tuple[Point, ...]) -> None:
    if len(points) < 3:
        raise InvalidMaskError(f"Polygon needs at least 3 points, got {len(points)}")

    for i, p in enumerate(points):
        if not (math.isfinite(p.x) and math.isfinite(p.y)):
            raise InvalidMaskError(f"Non-finite coordinate at vertex {i}: ({p.x}, {p.y})")

    n = len(points)
    for i in range(n):
        a, b = points[i], points[(i + 1) % n]
        if a.x == b.x and a.y == b.y:
            raise InvalidMaskError(f"Vertices {i} and {(i + 1) % n} coincide at ({a.x}, {a.y})")

    # Collinear outline; a bowtie has zero signed area but is not degenerate
    origin = points[0]
    far = max(points, key=lambda p: math.hypot(p.x - origin.x, p.y - origin.y))
    dx, dy = far.x - origin.x, far.y - origin.y
    length = math.hypot(dx, dy)
    spread = max(abs(dx * (p.y - origin.y) - dy * (p.x - origin.x)) / length for p in points)
    if spread < COLLINEAR_TOLERANCE_PX:
        raise InvalidMaskError("Polygon is degenerate: all vertices are collinear")


def point_in_polygon(mask: PolygonMask, point: Point) -> bool:
    """Even-odd ray casting test."""
    x, y = point.x, point.y
    pts = mask.points
    n = len(pts)
    inside = False

    j = n - 1
    for i in range(n):
        xi, yi = pts[i].x, pts[i].y
        xj, yj = pts[j].x, pts[j].y
        if ((yi > y) != (yj > y)) and (x < (xj - xi) * (y - yi) / (yj - yi) + xi):
            inside = not inside
        j = i

    return inside


def rasterize(mask: PolygonMask, width: int, height: int) -> np.ndarray:
    """
    Rasterize the polygon into a (height, width) uint8 buffer, 255 inside.

    Vertices outside the raster are clipped by the fill.
    """
    if width <= 0 or height <= 0:
        raise InvalidMaskError(f"Raster size must be positive, got {width}x{height}")

    img = Image.new("L", (width, height), 0)
    draw = ImageDraw.Draw(img)
    draw.polygon(mask.as_tuples(), fill=255)
    return np.array(img, dtype=np.uint8)


def mask_bounds(mask: PolygonMask, width: int, height: int) -> Optional[MaskBounds]:
    """Bounding box of the polygon clipped to the raster, or None if it misses entirely."""
    xs = [p.x for p in mask.points]
    ys = [p.y for p in mask.points]

    x0 = max(0, int(math.floor(min(xs))))
    y0 = max(0, int(math.floor(min(ys))))
    x1 = min(width, int(math.ceil(max(xs))) + 1)
    y1 = min(height, int(math.ceil(max(ys))) + 1)

    if x1 <= x0 or y1 <= y0:
        return None
    return MaskBounds(x0, y0, x1, y1)


def polygon_area(mask: PolygonMask) -> float:
    """Shoelace area in square pixels."""
    pts = mask.points
    n = len(pts)
    total = 0.0
    for i in range(n):
        j = (i + 1) % n
        total += pts[i].x * pts[j].y - pts[j].x * pts[i].y
    return abs(total) / 2.0


def polygon_area_m2(mask: PolygonMask, pixels_per_meter: float) -> float:
    if pixels_per_meter <= 0:
        logger.warning(f"[MASK] Invalid pixels_per_meter={pixels_per_meter}, area reported as 0")
        return 0.0
    return polygon_area(mask) / (pixels_per_meter ** 2)


def centroid(mask: PolygonMask) -> Point:
    n = len(mask.points)
    return Point(
        sum(p.x for p in mask.points) / n,
        sum(p.y for p in mask.points) / n,
    )
