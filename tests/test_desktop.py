"""Tests for vidroi.desktop — window events without opening a window."""

from concurrent.futures import Future
from pathlib import Path
from unittest.mock import MagicMock, patch

import cv2
import numpy as np
import pytest

from vidroi.desktop import DesktopEditor, read_first_frame, run_desktop
from vidroi.geometry import Size
from vidroi.source import HandleRegistry, VideoSource
from vidroi.submission import SubmissionPipeline
from vidroi.views import SubmissionSlot, ViewController, ViewState


class _ImmediateSlot(SubmissionSlot):
    def start(self, fn):
        fut = Future()
        fut.set_result(fn())
        return fut


@pytest.fixture()
def session() -> MagicMock:
    s = MagicMock()
    resp = MagicMock(ok=True, status_code=200)
    resp.json.return_value = {"video_filename": "out.mp4"}
    s.post.return_value = resp
    s.get.return_value = resp
    return s


@pytest.fixture()
def ctl(tmp_path: Path, session) -> ViewController:
    clip = tmp_path / "clip.mp4"
    clip.write_bytes(b"VIDEODATA")
    pipeline = SubmissionPipeline(base_url="http://svc:8000", session=session, timeout=5)
    c = ViewController(pipeline=pipeline, source=VideoSource(HandleRegistry()), slot=_ImmediateSlot())
    c.select_video(clip)
    return c


@pytest.fixture()
def frame() -> np.ndarray:
    return np.zeros((1080, 1920, 3), dtype=np.uint8)


class TestDesktopEditor:
    def test_display_shrunk_to_bounds(self, ctl, frame):
        editor = DesktopEditor(ctl, frame, max_size=Size(960, 960))
        assert editor.display.shape[:2] == (540, 960)
        assert ctl.canvas_size == Size(960, 540)
        assert ctl.video_size == Size(1920, 1080)

    def test_small_frame_not_enlarged(self, ctl):
        small = np.zeros((240, 320, 3), dtype=np.uint8)
        editor = DesktopEditor(ctl, small, max_size=Size(1280, 720))
        assert editor.display.shape[:2] == (240, 320)

    def test_mouse_ignored_before_drawing(self, ctl, frame):
        editor = DesktopEditor(ctl, frame, max_size=Size(960, 540))
        editor.on_mouse(cv2.EVENT_LBUTTONDOWN, 10, 10, 0, None)
        assert ctl.session.polygons == ()

    def test_draw_and_submit_scales_to_video(self, ctl, frame, session):
        editor = DesktopEditor(ctl, frame, max_size=Size(960, 540))
        assert editor.on_key(ord("d")) is True
        assert ctl.state is ViewState.DRAWING

        editor.on_mouse(cv2.EVENT_LBUTTONDOWN, 0, 0, 0, None)
        editor.on_mouse(cv2.EVENT_MOUSEMOVE, 480, 270, 0, None)
        editor.on_mouse(cv2.EVENT_LBUTTONUP, 480, 270, 0, None)
        editor.on_mouse(cv2.EVENT_MOUSEMOVE, 900, 500, 0, None)
        assert len(ctl.session.polygons[0]) == 2

        editor.on_key(ord("s"))
        assert ctl.state is ViewState.RESULT
        sent = session.post.call_args.kwargs["data"]["polygon"]
        assert sent == "[[[0.0, 0.0], [960.0, 540.0]]]"

    def test_clear_key(self, ctl, frame):
        editor = DesktopEditor(ctl, frame, max_size=Size(960, 540))
        editor.on_key(ord("d"))
        editor.on_mouse(cv2.EVENT_LBUTTONDOWN, 1, 1, 0, None)
        editor.on_mouse(cv2.EVENT_LBUTTONUP, 1, 1, 0, None)
        editor.on_key(ord("c"))
        assert ctl.session.polygons == ()

    def test_quit_key(self, ctl, frame):
        editor = DesktopEditor(ctl, frame, max_size=Size(960, 540))
        assert editor.on_key(ord("q")) is False
        assert editor.on_key(27) is False

    def test_render_draws_polygons(self, ctl, frame):
        editor = DesktopEditor(ctl, frame, max_size=Size(960, 540))
        editor.on_key(ord("d"))
        blank = editor.render()
        editor.on_mouse(cv2.EVENT_LBUTTONDOWN, 100, 100, 0, None)
        editor.on_mouse(cv2.EVENT_MOUSEMOVE, 300, 100, 0, None)
        editor.on_mouse(cv2.EVENT_MOUSEMOVE, 300, 300, 0, None)
        editor.on_mouse(cv2.EVENT_LBUTTONUP, 300, 300, 0, None)
        drawn = editor.render()
        assert drawn.shape == (540, 960, 3)
        assert drawn[200, 300].any()
        assert not blank[200, 300].any()


class TestRunDesktop:
    def test_unreadable_video_raises(self, tmp_path):
        bad = tmp_path / "bad.mp4"
        bad.write_bytes(b"\x00")
        with pytest.raises(RuntimeError, match="Cannot read video"):
            run_desktop(bad)

    def test_read_first_frame_missing(self, tmp_path):
        assert read_first_frame(tmp_path / "missing.mp4") is None

    def test_run_releases_handle(self, tmp_path, frame):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"x")
        registry = HandleRegistry()
        ctl = ViewController(source=VideoSource(registry))
        with patch("vidroi.desktop.read_first_frame", return_value=frame), \
                patch.object(DesktopEditor, "run", return_value=ViewState.READY_TO_DRAW):
            outcome = run_desktop(clip, controller=ctl)
        assert len(registry) == 0
        assert outcome.state is ViewState.READY_TO_DRAW
        assert outcome.result_url is None

    def test_quit_closes_controller(self, tmp_path, frame):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"x")
        slot = MagicMock(spec=SubmissionSlot)
        ctl = ViewController(source=VideoSource(HandleRegistry()), slot=slot)
        with patch("vidroi.desktop.read_first_frame", return_value=frame), \
                patch.object(DesktopEditor, "run", return_value=ViewState.SUBMITTING):
            outcome = run_desktop(clip, controller=ctl)
        slot.shutdown.assert_called_once()
        assert ctl.state is ViewState.IDLE
        assert outcome.state is ViewState.SUBMITTING

    def test_result_captured_before_teardown(self, tmp_path, frame, ctl):
        def _finish(editor):
            editor.controller.start_drawing()
            editor.controller.add_stroke([(0, 0), (100, 100)])
            editor.controller.submit()
            return editor.controller.state

        with patch("vidroi.desktop.read_first_frame", return_value=frame), \
                patch.object(DesktopEditor, "run", _finish), \
                patch("vidroi.desktop.play_video") as play:
            outcome = run_desktop(tmp_path / "clip.mp4", controller=ctl)
        assert outcome.state is ViewState.RESULT
        assert outcome.result_url == "http://svc:8000/videos/out.mp4"
        play.assert_called_once_with("http://svc:8000/videos/out.mp4")
        assert ctl.result_url is None
