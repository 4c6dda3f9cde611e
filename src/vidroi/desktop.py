"""OpenCV window client: draw regions over the first frame and submit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np

from vidroi.config import settings
from vidroi.geometry import Size, fit_within
from vidroi.views import Panel, ViewController, ViewState

log = logging.getLogger(__name__)

WINDOW = "vidroi | d=draw  s=submit  c=clear  q=quit"

_POLY_COLOR = (0, 165, 255)
_OPEN_COLOR = (0, 255, 255)
_TEXT_COLOR = (255, 255, 255)


@dataclass
class DrawOutcome:
    """What a drawing session ended with, captured before teardown."""

    state: ViewState
    result_url: str | None = None
    error: str | None = None


def read_first_frame(video_path: str | Path) -> np.ndarray | None:
    """Decode frame 0 of a video, or None if it cannot be read."""
    cap = cv2.VideoCapture(str(video_path))
    try:
        if not cap.isOpened():
            return None
        ret, frame = cap.read()
        if not ret or frame is None:
            return None
        return frame
    finally:
        cap.release()


class DesktopEditor:
    """Window pixels are canvas space; the decoded frame is video space.

    The frame is shrunk to fit the display bounds, so the two spaces
    differ whenever the video is larger than the window.
    """

    def __init__(
        self,
        controller: ViewController,
        frame: np.ndarray,
        max_size: Size | None = None,
    ) -> None:
        self.controller = controller
        h, w = frame.shape[:2]
        video_size = Size(w, h)
        bounds = max_size or Size(settings.display_max_width, settings.display_max_height)
        scale = fit_within(video_size, bounds)
        if scale < 1.0:
            self.display = cv2.resize(
                frame, (max(1, int(w * scale)), max(1, int(h * scale))),
                interpolation=cv2.INTER_AREA,
            )
        else:
            self.display = frame.copy()
        dh, dw = self.display.shape[:2]
        controller.set_canvas_size(Size(dw, dh))
        controller.set_video_size(video_size)
        self._pressed = False

    def on_mouse(self, event: int, x: int, y: int, flags: int, param: object) -> None:
        if event == cv2.EVENT_LBUTTONDOWN:
            self._pressed = True
            self.controller.pointer_down(x, y)
        elif event == cv2.EVENT_MOUSEMOVE and self._pressed:
            self.controller.pointer_move(x, y)
        elif event == cv2.EVENT_LBUTTONUP:
            self._pressed = False
            self.controller.pointer_up()

    def on_key(self, key: int) -> bool:
        """Handle a key press. Returns False when the window should close."""
        ctl = self.controller
        if key in (ord("q"), 27):
            return False
        if key == ord("d") and ctl.can_start_drawing:
            ctl.start_drawing()
        elif key == ord("c") and ctl.state is ViewState.DRAWING:
            ctl.clear_polygons()
        elif key == ord("s") and ctl.state is ViewState.DRAWING:
            ctl.submit()
        return True

    def render(self) -> np.ndarray:
        ctl = self.controller
        img = self.display.copy()
        panels = ctl.visible_panels

        if Panel.DRAWING_OVERLAY in panels:
            polygons = ctl.session.polygons
            for i, poly in enumerate(polygons):
                pts = np.array([[int(p.x), int(p.y)] for p in poly], dtype=np.int32)
                is_open = ctl.session.is_open and i == len(polygons) - 1
                color = _OPEN_COLOR if is_open else _POLY_COLOR
                if len(pts) > 1:
                    cv2.polylines(img, [pts], isClosed=not is_open, color=color, thickness=2)
                else:
                    cv2.circle(img, tuple(int(v) for v in pts[0]), 3, color, -1)

        status = ctl.state.value.replace("_", " ")
        if ctl.processing:
            status = "Processing..."
        elif ctl.error:
            status = ctl.error
        cv2.putText(img, status, (10, 24), cv2.FONT_HERSHEY_SIMPLEX, 0.6, _TEXT_COLOR, 2)
        return img

    def run(self) -> ViewState:
        cv2.namedWindow(WINDOW)
        cv2.setMouseCallback(WINDOW, self.on_mouse)
        try:
            while self.controller.state is not ViewState.RESULT:
                cv2.imshow(WINDOW, self.render())
                key = cv2.waitKey(20) & 0xFF
                if key != 255 and not self.on_key(key):
                    break
        finally:
            cv2.destroyWindow(WINDOW)
        return self.controller.state


def play_video(url: str, window: str = "Processed Video") -> bool:
    """Play a video URL until it ends or q/Esc is pressed."""
    cap = cv2.VideoCapture(url)
    if not cap.isOpened():
        log.warning("Cannot open processed video %s", url)
        return False
    fps = cap.get(cv2.CAP_PROP_FPS) or 25.0
    delay = max(1, int(1000 / fps))
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            cv2.imshow(window, frame)
            if cv2.waitKey(delay) & 0xFF in (ord("q"), 27):
                break
    finally:
        cap.release()
        cv2.destroyWindow(window)
    return True


def run_desktop(video_path: str | Path, controller: ViewController | None = None) -> DrawOutcome:
    """Open the drawing window for a video; play the processed result if any.

    The controller is closed on the way out, which also abandons a
    submission still in flight when the window is quit.
    """
    frame = read_first_frame(video_path)
    if frame is None:
        raise RuntimeError(f"Cannot read video: {video_path}")

    ctl = controller or ViewController()
    ctl.select_video(video_path)
    editor = DesktopEditor(ctl, frame)
    try:
        state = editor.run()
        outcome = DrawOutcome(state=state, result_url=ctl.result_url, error=ctl.error)
        if state is ViewState.RESULT and outcome.result_url:
            play_video(outcome.result_url)
    finally:
        ctl.close()
    return outcome
