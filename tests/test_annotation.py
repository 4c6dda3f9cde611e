"""Tests for vidroi.annotation — polygon authoring transitions."""

import pytest

from vidroi.annotation import AnnotationSession
from vidroi.geometry import Point, Size, Space


class TestAnnotationSession:
    def test_begin_extend_end(self):
        s = AnnotationSession()
        assert s.begin_polygon(Point(0, 0)) is True
        s.extend_polygon(Point(10, 0))
        s.extend_polygon(Point(10, 10))
        poly = s.end_polygon()
        assert poly == (Point(0, 0), Point(10, 0), Point(10, 10))
        assert s.polygons == (poly,)
        assert s.is_open is False

    def test_second_begin_is_noop(self):
        s = AnnotationSession()
        s.begin_polygon(Point(0, 0))
        assert s.begin_polygon(Point(50, 50)) is False
        assert len(s) == 1
        assert s.polygons == ((Point(0, 0),),)

    def test_extend_without_open_polygon_ignored(self):
        s = AnnotationSession()
        assert s.extend_polygon(Point(1, 1)) is False
        assert s.polygons == ()

    def test_end_without_open_polygon(self):
        assert AnnotationSession().end_polygon() is None

    def test_degenerate_polygon_allowed(self):
        s = AnnotationSession()
        s.begin_polygon(Point(3, 3))
        s.end_polygon()
        assert s.polygons == ((Point(3, 3),),)

    def test_multiple_polygons_keep_order(self):
        s = AnnotationSession()
        for start in (0, 100, 200):
            s.begin_polygon(Point(start, 0))
            s.extend_polygon(Point(start + 1, 1))
            s.end_polygon()
        assert [p[0].x for p in s.polygons] == [0, 100, 200]

    def test_open_polygon_listed_last(self):
        s = AnnotationSession()
        s.begin_polygon(Point(0, 0))
        s.end_polygon()
        s.begin_polygon(Point(5, 5))
        assert s.is_open is True
        assert len(s.polygons) == 2
        assert s.closed_polygons == ((Point(0, 0),),)

    def test_snapshot_does_not_alias_open_polygon(self):
        s = AnnotationSession()
        s.begin_polygon(Point(0, 0))
        snap = s.polygons
        s.extend_polygon(Point(1, 1))
        assert snap == ((Point(0, 0),),)

    def test_clamps_to_bounds(self):
        s = AnnotationSession(bounds=Size(100, 50))
        s.begin_polygon(Point(-10, 20))
        s.extend_polygon(Point(150, 80))
        assert s.end_polygon() == (Point(0, 20), Point(100, 50))

    def test_unbounded_records_as_is(self):
        s = AnnotationSession()
        s.begin_polygon(Point(-10, 900))
        assert s.polygons[0][0] == Point(-10, 900)

    def test_rejects_video_space_points(self):
        with pytest.raises(ValueError, match="canvas space"):
            AnnotationSession().begin_polygon(Point(1, 1, Space.VIDEO))

    def test_clear(self):
        s = AnnotationSession()
        s.begin_polygon(Point(0, 0))
        s.clear()
        assert s.polygons == ()
        assert s.is_open is False
