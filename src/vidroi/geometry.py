"""Points, polygons and the canvas → video coordinate mapping."""

from __future__ import annotations

import enum
import re
from collections.abc import Sequence
from dataclasses import dataclass

from vidroi.errors import DimensionUnavailable


class Space(enum.Enum):
    CANVAS = "canvas"  # pixels of the rendered overlay, layout dependent
    VIDEO = "video"  # pixels of the video's intrinsic resolution


@dataclass(frozen=True)
class Point:
    x: float
    y: float
    space: Space = Space.CANVAS

    def as_pair(self) -> list[float]:
        return [self.x, self.y]


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    @property
    def known(self) -> bool:
        return self.width > 0 and self.height > 0

    def __str__(self) -> str:
        return f"{self.width:g}x{self.height:g}"

    def scaled(self, factor: float) -> Size:
        return Size(self.width * factor, self.height * factor)


Polygon = tuple[Point, ...]

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*[xX×]\s*(\d+(?:\.\d+)?)\s*$")


def parse_size(text: str) -> Size:
    """Parse ``"800x600"`` into a Size."""
    m = _SIZE_RE.match(text)
    if not m:
        raise ValueError(f"Expected WIDTHxHEIGHT, got: {text!r}")
    return Size(float(m.group(1)), float(m.group(2)))


def fit_within(size: Size, bounds: Size) -> float:
    """Scale factor that shrinks ``size`` to fit ``bounds`` (never > 1)."""
    if not size.known:
        raise DimensionUnavailable(f"Cannot fit unknown size {size}")
    return min(1.0, bounds.width / size.width, bounds.height / size.height)


def clamp_point(point: Point, bounds: Size) -> Point:
    """Clamp a point into the rectangle [0, width] x [0, height]."""
    return Point(
        min(max(point.x, 0.0), float(bounds.width)),
        min(max(point.y, 0.0), float(bounds.height)),
        point.space,
    )


def to_video_space(polygon: Sequence[Point], canvas_size: Size, video_size: Size) -> Polygon:
    """Rescale a CanvasSpace polygon into VideoSpace.

    Each axis is scaled independently.  The overlay is assumed to sit
    exactly over the video element (same position and size); letterboxing
    is not corrected here.
    """
    if not canvas_size.known:
        raise DimensionUnavailable(f"Canvas size not laid out: {canvas_size}")
    if not video_size.known:
        raise DimensionUnavailable(f"Video intrinsic size unknown: {video_size}")

    sx = video_size.width / canvas_size.width
    sy = video_size.height / canvas_size.height

    out = []
    for pt in polygon:
        if pt.space is not Space.CANVAS:
            raise ValueError(f"Expected a canvas-space point, got {pt.space.value}: {pt}")
        out.append(Point(pt.x * sx, pt.y * sy, Space.VIDEO))
    return tuple(out)


def polygons_to_video_space(
    polygons: Sequence[Sequence[Point]], canvas_size: Size, video_size: Size,
) -> list[Polygon]:
    """Map every polygon of a set, preserving set and point order."""
    return [to_video_space(poly, canvas_size, video_size) for poly in polygons]


def polygons_payload(polygons: Sequence[Sequence[Point]]) -> list[list[list[float]]]:
    """Serialize a VideoSpace polygon set as nested ``[x, y]`` pairs."""
    payload = []
    for poly in polygons:
        pairs = []
        for pt in poly:
            if pt.space is not Space.VIDEO:
                raise ValueError(f"Only video-space points are sent, got {pt.space.value}")
            pairs.append(pt.as_pair())
        payload.append(pairs)
    return payload


def polygons_from_pairs(data: Sequence[Sequence[Sequence[float]]]) -> list[Polygon]:
    """Build CanvasSpace polygons from nested ``[x, y]`` pairs."""
    polygons = []
    for poly in data:
        points = []
        for pair in poly:
            if len(pair) != 2:
                raise ValueError(f"Expected an [x, y] pair, got: {pair!r}")
            points.append(Point(float(pair[0]), float(pair[1])))
        polygons.append(tuple(points))
    return polygons
