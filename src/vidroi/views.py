"""View state machine: which panel is shown and which controls are live."""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable

from vidroi.annotation import AnnotationSession
from vidroi.errors import (
    DimensionUnavailable,
    ServiceRejected,
    StateError,
    TransportError,
    ValidationFailed,
)
from vidroi.geometry import Point, Size
from vidroi.source import PlayableHandle, VideoSource
from vidroi.submission import AnalysisResult, SubmissionPipeline, SubmissionRequest

log = logging.getLogger(__name__)

MSG_VALIDATION = "Please upload a video and define a polygon."
MSG_REJECTED = "Failed to process video."
MSG_TRANSPORT = "Error processing video."


class ViewState(enum.Enum):
    IDLE = "idle"
    READY_TO_DRAW = "ready_to_draw"
    DRAWING = "drawing"
    SUBMITTING = "submitting"
    RESULT = "result"


class Panel(enum.Enum):
    RAW_VIDEO = "raw_video"
    DRAWING_OVERLAY = "drawing_overlay"
    PROCESSED_VIDEO = "processed_video"


_PANELS: dict[ViewState, frozenset[Panel]] = {
    ViewState.IDLE: frozenset(),
    ViewState.READY_TO_DRAW: frozenset({Panel.RAW_VIDEO}),
    ViewState.DRAWING: frozenset({Panel.RAW_VIDEO, Panel.DRAWING_OVERLAY}),
    ViewState.SUBMITTING: frozenset({Panel.RAW_VIDEO, Panel.DRAWING_OVERLAY}),
    ViewState.RESULT: frozenset({Panel.PROCESSED_VIDEO}),
}


class SubmissionSlot:
    """Runs at most one submission at a time on a daemon thread.

    ``shutdown`` abandons the in-flight task.  Its thread is a daemon, so it
    never holds up interpreter exit; whatever it produces is left to the
    caller's own staleness check.
    """

    def __init__(self) -> None:
        self._future: Future | None = None
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._future is not None and not self._future.done()

    def start(self, fn: Callable[[], AnalysisResult | None]) -> Future:
        with self._lock:
            if self._future is not None and not self._future.done():
                raise StateError("A submission is already in flight")
            future: Future = Future()
            future.set_running_or_notify_cancel()
            self._future = future
        t = threading.Thread(target=self._run, args=(fn, future), name="vidroi-submit", daemon=True)
        t.start()
        return future

    @staticmethod
    def _run(fn: Callable[[], AnalysisResult | None], future: Future) -> None:
        try:
            result = fn()
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)

    def shutdown(self) -> None:
        with self._lock:
            self._future = None


class ViewController:
    """Single owner of the authoring session, the video source and the view state.

    Transitions:
      IDLE → READY_TO_DRAW        select_video
      READY_TO_DRAW → DRAWING     start_drawing
      DRAWING → SUBMITTING        submit (valid, dimensions known)
      SUBMITTING → RESULT         submission succeeded
      SUBMITTING → DRAWING        submission failed (polygons kept for retry)
      any → READY_TO_DRAW         select_video (polygons and result discarded)

    The submission request is captured by value before the worker starts,
    so edits or a video replacement during SUBMITTING cannot alter it.  An
    outcome that arrives after the video was replaced is discarded.
    """

    def __init__(
        self,
        pipeline: SubmissionPipeline | None = None,
        source: VideoSource | None = None,
        slot: SubmissionSlot | None = None,
    ) -> None:
        self.pipeline = pipeline or SubmissionPipeline()
        self.source = source or VideoSource()
        self.session = AnnotationSession()
        self._slot = slot or SubmissionSlot()
        self._lock = threading.RLock()
        self._state = ViewState.IDLE
        self._generation = 0
        self._canvas_size: Size | None = None
        self._video_size: Size | None = None
        self.error: str | None = None
        self.result: AnalysisResult | None = None
        self.result_url: str | None = None
        self.result_retrievable: bool | None = None

    # -- derived view ---------------------------------------------------------

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def visible_panels(self) -> frozenset[Panel]:
        return _PANELS[self._state]

    @property
    def processing(self) -> bool:
        return self._state is ViewState.SUBMITTING

    @property
    def can_start_drawing(self) -> bool:
        return self._state is ViewState.READY_TO_DRAW

    @property
    def canvas_size(self) -> Size | None:
        return self._canvas_size

    @property
    def video_size(self) -> Size | None:
        """Size reported by the playback surface, else probed from the file."""
        if self._video_size is not None:
            return self._video_size
        return self.source.intrinsic_size()

    @property
    def dimensions_ready(self) -> bool:
        canvas, video = self._canvas_size, self.video_size
        return canvas is not None and canvas.known and video is not None and video.known

    @property
    def can_submit(self) -> bool:
        return (
            self._state is ViewState.DRAWING
            and len(self.session) > 0
            and self.dimensions_ready
        )

    # -- video source ----------------------------------------------------------

    def select_video(self, file: str | Path, owned: bool = False) -> PlayableHandle:
        """Load a new video; resets to READY_TO_DRAW with an empty polygon set."""
        with self._lock:
            handle = self.source.select(file, owned=owned)
            self._generation += 1
            self._video_size = None
            self.session.clear()
            self._clear_outcome()
            self._state = ViewState.READY_TO_DRAW
            return handle

    def close(self) -> None:
        """Tear down: release the playable handle, abandon any in-flight
        submission and return to IDLE."""
        with self._lock:
            self.source.release()
            self._generation += 1
            self._slot.shutdown()
            self._video_size = None
            self.session.clear()
            self._clear_outcome()
            self._state = ViewState.IDLE

    # -- layout ----------------------------------------------------------------

    def set_canvas_size(self, size: Size | None) -> None:
        with self._lock:
            self._canvas_size = size
            self.session.bounds = size

    def set_video_size(self, size: Size | None) -> None:
        with self._lock:
            self._video_size = size if size is not None and size.known else None

    # -- drawing ---------------------------------------------------------------

    def start_drawing(self) -> None:
        with self._lock:
            if self._state is not ViewState.READY_TO_DRAW:
                raise StateError(f"Cannot start drawing from {self._state.value}")
            self._state = ViewState.DRAWING

    def pointer_down(self, x: float, y: float) -> bool:
        with self._lock:
            if self._state is not ViewState.DRAWING:
                return False
            return self.session.begin_polygon(Point(x, y))

    def pointer_move(self, x: float, y: float) -> bool:
        with self._lock:
            if self._state is not ViewState.DRAWING:
                return False
            return self.session.extend_polygon(Point(x, y))

    def pointer_up(self) -> bool:
        with self._lock:
            if self._state is not ViewState.DRAWING:
                return False
            return self.session.end_polygon() is not None

    def add_stroke(self, points: list[tuple[float, float]]) -> bool:
        """Record one complete begin/extend/end cycle atomically.

        Ignored outside DRAWING, for an empty stroke, or while a polygon
        is already open from pointer events.
        """
        with self._lock:
            if self._state is not ViewState.DRAWING or not points:
                return False
            (x0, y0), rest = points[0], points[1:]
            if not self.session.begin_polygon(Point(x0, y0)):
                return False
            for x, y in rest:
                self.session.extend_polygon(Point(x, y))
            self.session.end_polygon()
            return True

    def clear_polygons(self) -> None:
        with self._lock:
            if self._state is not ViewState.DRAWING:
                raise StateError(f"Cannot clear polygons from {self._state.value}")
            self.session.clear()

    # -- submission --------------------------------------------------------------

    def submit(self, canvas_size: Size | None = None) -> Future | None:
        """Start a submission of the current polygon set.

        Returns the in-flight future, or None when the submission was
        refused before any network activity (validation message set on
        ``error``, or dimensions not ready yet).  The future resolves after
        the state transition has been applied.
        """
        with self._lock:
            if self._state is not ViewState.DRAWING:
                raise StateError(f"Cannot submit from {self._state.value}")
            if canvas_size is not None:
                self.set_canvas_size(canvas_size)

            try:
                request = self.pipeline.prepare(
                    self.source,
                    self.session.polygons,
                    self._canvas_size or Size(0, 0),
                    self.video_size or Size(0, 0),
                )
            except ValidationFailed as e:
                log.info("Submission refused: %s", e)
                self.error = MSG_VALIDATION
                return None
            except DimensionUnavailable as e:
                log.info("Submission not ready: %s", e)
                return None

            self.error = None
            self._state = ViewState.SUBMITTING
            generation = self._generation
            try:
                return self._slot.start(lambda: self._run_submission(request, generation))
            except StateError:
                self._state = ViewState.DRAWING
                raise

    def _run_submission(self, request: SubmissionRequest, generation: int) -> AnalysisResult | None:
        result = url = retrievable = error = None
        try:
            result = self.pipeline.send(request)
        except ServiceRejected:
            error = MSG_REJECTED
        except TransportError:
            error = MSG_TRANSPORT
        except Exception:
            log.exception("Unexpected submission failure")
            error = MSG_TRANSPORT
        else:
            url = self.pipeline.result_url(result)
            retrievable = self.pipeline.check_retrievable(url)

        with self._lock:
            if generation != self._generation:
                log.info("Discarding outcome of a submission for a replaced video")
                return None
            if error is not None:
                self.error = error
                self._state = ViewState.DRAWING
                return None
            self.result = result
            self.result_url = url
            self.result_retrievable = retrievable
            self._state = ViewState.RESULT
            return result

    def _clear_outcome(self) -> None:
        self.error = None
        self.result = None
        self.result_url = None
        self.result_retrievable = None

    # -- serialization -----------------------------------------------------------

    def snapshot(self) -> dict:
        """Plain-data view of the controller for UI rendering."""
        with self._lock:
            handle = self.source.handle
            return {
                "state": self._state.value,
                "panels": sorted(p.value for p in self.visible_panels),
                "video_url": handle.url if handle else None,
                "can_start_drawing": self.can_start_drawing,
                "can_submit": self.can_submit,
                "processing": self.processing,
                "polygons": [[pt.as_pair() for pt in poly] for poly in self.session.polygons],
                "error": self.error,
                "result_url": self.result_url,
                "result_retrievable": self.result_retrievable,
            }
