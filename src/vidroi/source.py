"""Selected video file and its revocable playable handle."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path

import cv2

from vidroi.geometry import Size

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayableHandle:
    """A temporary token under which a selected file can be played."""

    token: str
    path: Path

    @property
    def url(self) -> str:
        return f"/media/{self.token}"


class HandleRegistry:
    """Table of live playable handles, keyed by token.

    Only VideoSource creates or revokes entries; the web layer merely
    resolves tokens to files while they are live.
    """

    def __init__(self) -> None:
        self._live: dict[str, Path] = {}
        self._lock = threading.Lock()

    def create(self, path: Path) -> PlayableHandle:
        token = uuid.uuid4().hex
        with self._lock:
            self._live[token] = path
        log.debug("Created playable handle %s for %s", token, path)
        return PlayableHandle(token=token, path=path)

    def revoke(self, handle: PlayableHandle) -> None:
        with self._lock:
            self._live.pop(handle.token, None)
        log.debug("Revoked playable handle %s", handle.token)

    def resolve(self, token: str) -> Path | None:
        with self._lock:
            return self._live.get(token)

    def __len__(self) -> int:
        with self._lock:
            return len(self._live)


def probe_video_size(path: str | Path) -> Size | None:
    """Intrinsic frame size of a video, or None when it cannot be decoded."""
    cap = cv2.VideoCapture(str(path))
    try:
        if not cap.isOpened():
            return None
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
    finally:
        cap.release()
    size = Size(width, height)
    return size if size.known else None


class VideoSource:
    """Owns the selected file and at most one live playable handle.

    The handle is released explicitly on replacement and on teardown
    (``release()`` or leaving a ``with`` block).  When a file is selected
    with ``owned=True`` it is deleted once its handle is released.
    """

    def __init__(self, registry: HandleRegistry | None = None) -> None:
        self._registry = registry if registry is not None else media_registry
        self._file: Path | None = None
        self._owned = False
        self._handle: PlayableHandle | None = None
        self._size: Size | None = None
        self._probed = False

    @property
    def file(self) -> Path | None:
        return self._file

    @property
    def handle(self) -> PlayableHandle | None:
        return self._handle

    @property
    def selected(self) -> bool:
        return self._file is not None

    def select(self, file: str | Path, owned: bool = False) -> PlayableHandle:
        """Replace the current file, revoking its handle before creating a new one."""
        self.release()
        self._file = Path(file)
        self._owned = owned
        self._handle = self._registry.create(self._file)
        log.info("Selected video %s", self._file.name)
        return self._handle

    def intrinsic_size(self) -> Size | None:
        """Native resolution of the selected file, or None if unknown."""
        if self._file is None:
            return None
        if not self._probed:
            self._size = probe_video_size(self._file)
            self._probed = True
        return self._size

    def read_bytes(self) -> bytes:
        if self._file is None:
            raise FileNotFoundError("No video selected")
        return self._file.read_bytes()

    def release(self) -> None:
        if self._handle is not None:
            self._registry.revoke(self._handle)
            self._handle = None
        if self._file is not None and self._owned:
            self._file.unlink(missing_ok=True)
        self._file = None
        self._owned = False
        self._size = None
        self._probed = False

    def __enter__(self) -> VideoSource:
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()


# Module-level singleton
media_registry = HandleRegistry()
