"""Submit a video plus region polygons to the analysis service."""

from __future__ import annotations

import json
import logging
import mimetypes
from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import quote

import pydantic
import requests
from pydantic import AliasChoices, BaseModel, Field

from vidroi.config import settings
from vidroi.errors import (
    RetrievalFailure,
    ServiceRejected,
    TransportError,
    ValidationFailed,
)
from vidroi.geometry import Point, Size, polygons_payload, polygons_to_video_space
from vidroi.source import VideoSource

log = logging.getLogger(__name__)


class AnalysisResult(BaseModel):
    """Service response identifying the processed video."""

    resource_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("video_filename", "resource_id"),
    )


@dataclass(frozen=True)
class SubmissionRequest:
    """Everything one submission sends, captured by value at submit time."""

    video_name: str
    video_bytes: bytes
    content_type: str
    polygons: list[list[list[float]]]

    @property
    def polygon_json(self) -> str:
        return json.dumps(self.polygons)


class SubmissionPipeline:
    """Builds, sends and interprets one analysis request per call.

    No retries and no cancellation: each ``send`` is a single blocking
    attempt.  Callers are responsible for not running two at once.
    """

    def __init__(
        self,
        base_url: str | None = None,
        analyze_path: str | None = None,
        videos_path: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url or settings.service_url).rstrip("/")
        self.analyze_path = analyze_path or settings.analyze_path
        self.videos_path = videos_path or settings.videos_path
        self.timeout = timeout if timeout is not None else settings.request_timeout_s
        self.session = session or requests.Session()

    @property
    def analyze_url(self) -> str:
        return f"{self.base_url}/{self.analyze_path.strip('/')}"

    def result_url(self, result: AnalysisResult) -> str:
        """Retrieval URL of a processed video."""
        return f"{self.base_url}/{self.videos_path.strip('/')}/{quote(result.resource_id)}"

    def prepare(
        self,
        source: VideoSource | None,
        polygons: Sequence[Sequence[Point]],
        canvas_size: Size,
        video_size: Size,
    ) -> SubmissionRequest:
        """Validate and snapshot a submission without touching the network.

        Raises ValidationFailed for a missing video or an empty/degenerate
        polygon set, DimensionUnavailable when either size is unknown.
        """
        if source is None or not source.selected:
            raise ValidationFailed("No video selected")
        if not polygons:
            raise ValidationFailed("No polygon defined")
        if any(len(poly) == 0 for poly in polygons):
            raise ValidationFailed("Empty polygon in set")

        mapped = polygons_to_video_space(polygons, canvas_size, video_size)
        name = source.file.name
        content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        return SubmissionRequest(
            video_name=name,
            video_bytes=source.read_bytes(),
            content_type=content_type,
            polygons=polygons_payload(mapped),
        )

    def send(self, request: SubmissionRequest) -> AnalysisResult:
        """POST one multipart request and parse the result identifier."""
        log.info(
            "Submitting %s (%d bytes, %d polygon(s)) to %s",
            request.video_name, len(request.video_bytes), len(request.polygons), self.analyze_url,
        )
        try:
            response = self.session.post(
                self.analyze_url,
                files={"video": (request.video_name, request.video_bytes, request.content_type)},
                data={"polygon": request.polygon_json},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.warning("Submission transport failure: %s", e)
            raise TransportError(str(e)) from e

        if not response.ok:
            log.warning("Service rejected submission: HTTP %s", response.status_code)
            raise ServiceRejected(response.status_code)

        try:
            result = AnalysisResult.model_validate(response.json())
        except (ValueError, pydantic.ValidationError) as e:
            log.warning("Malformed service response: %s", e)
            raise TransportError(f"Malformed response: {e}") from e

        log.info("Submission accepted, result %s", result.resource_id)
        return result

    def submit(
        self,
        source: VideoSource | None,
        polygons: Sequence[Sequence[Point]],
        canvas_size: Size,
        video_size: Size,
    ) -> AnalysisResult:
        return self.send(self.prepare(source, polygons, canvas_size, video_size))

    def fetch_result(self, url: str) -> None:
        """Confirm the processed video is fetchable; raises RetrievalFailure."""
        try:
            response = self.session.get(url, stream=True, timeout=settings.retrieval_timeout_s)
        except requests.RequestException as e:
            raise RetrievalFailure(f"{url}: {e}") from e
        try:
            if not response.ok:
                raise RetrievalFailure(f"{url}: HTTP {response.status_code}")
        finally:
            response.close()

    def check_retrievable(self, url: str) -> bool:
        """Best-effort retrieval check; failures are logged, never raised."""
        try:
            self.fetch_result(url)
        except RetrievalFailure as e:
            log.warning("Processed video not retrievable: %s", e)
            return False
        return True
