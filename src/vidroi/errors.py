"""Error taxonomy for authoring and submission."""

from __future__ import annotations


class VidroiError(Exception):
    """Base class for all client errors."""


class ValidationFailed(VidroiError):
    """Submission preconditions not met; nothing was sent."""


class DimensionUnavailable(VidroiError):
    """Canvas or video intrinsic size is not known yet."""


class StateError(VidroiError):
    """Action not permitted in the current view state."""


class SubmissionError(VidroiError):
    """Base for failures of an attempted submission."""


class TransportError(SubmissionError):
    """Connection failure, timeout, or malformed response body."""


class ServiceRejected(SubmissionError):
    """The service answered with a non-OK status."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Service declined the request (HTTP {status_code})")
        self.status_code = status_code


class RetrievalFailure(VidroiError):
    """Processed video URL could not be confirmed fetchable."""
