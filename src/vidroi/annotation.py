"""Pointer-driven polygon authoring in canvas space."""

from __future__ import annotations

from vidroi.geometry import Point, Polygon, Size, Space, clamp_point


class AnnotationSession:
    """Accumulates polygons from begin/extend/end pointer transitions.

    At most one polygon is open at a time.  Committed polygons are stored
    as immutable tuples, so snapshots handed to rendering or submission
    never alias the polygon still being extended.

    When ``bounds`` is set, points are clamped into the canvas rectangle.
    """

    def __init__(self, bounds: Size | None = None) -> None:
        self._closed: list[Polygon] = []
        self._open: list[Point] | None = None
        self.bounds = bounds

    @property
    def is_open(self) -> bool:
        return self._open is not None

    @property
    def polygons(self) -> tuple[Polygon, ...]:
        """The full polygon set in authoring order, open polygon last."""
        if self._open is None:
            return tuple(self._closed)
        return (*self._closed, tuple(self._open))

    @property
    def closed_polygons(self) -> tuple[Polygon, ...]:
        return tuple(self._closed)

    def __len__(self) -> int:
        return len(self._closed) + (1 if self._open is not None else 0)

    def _accept(self, point: Point) -> Point:
        if point.space is not Space.CANVAS:
            raise ValueError(f"Polygons are authored in canvas space, got {point.space.value}")
        if self.bounds is not None and self.bounds.known:
            return clamp_point(point, self.bounds)
        return point

    def begin_polygon(self, point: Point) -> bool:
        """Open a new polygon seeded with ``point``. No-op if one is open."""
        if self._open is not None:
            return False
        self._open = [self._accept(point)]
        return True

    def extend_polygon(self, point: Point) -> bool:
        """Append to the open polygon. Silently ignored when none is open."""
        if self._open is None:
            return False
        self._open.append(self._accept(point))
        return True

    def end_polygon(self) -> Polygon | None:
        """Close the open polygon and return it (None if nothing was open)."""
        if self._open is None:
            return None
        poly = tuple(self._open)
        self._closed.append(poly)
        self._open = None
        return poly

    def clear(self) -> None:
        self._closed.clear()
        self._open = None
