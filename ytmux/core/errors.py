"""Error taxonomy for the fetch/mux/deliver pipeline.

Every stage raises a subclass of :class:`PipelineError`. Errors raised
before the response is committed carry the HTTP status the route answers
with; ``DeliveryError`` and ``CleanupError`` happen after that point and
are only ever logged.

Hierarchy
---------
PipelineError
├── ExtractionError
├── FormatNotFoundError
├── FetchError
├── MuxError
├── PlanError
├── DeliveryError
└── CleanupError
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for pipeline failures."""

    status_code: int = 500
    message_key: str = "error.pipeline_failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def params(self) -> dict:
        """Values interpolated into the localized message"""
        return {}


class ExtractionError(PipelineError):
    """The info extractor failed or returned malformed output."""

    status_code = 502
    message_key = "error.extraction_failed"


class FormatNotFoundError(PipelineError):
    """The selected format id is not part of the catalog."""

    status_code = 404
    message_key = "error.format_not_found"

    def __init__(self, format_id: str):
        super().__init__(f"Format {format_id!r} not found in catalog")
        self.format_id = format_id

    def params(self) -> dict:
        return {"format_id": self.format_id}


class FetchError(PipelineError):
    """A stream fetch ended without producing its artifact."""

    status_code = 502
    message_key = "error.fetch_failed"

    def __init__(self, slot: str, exit_code: Optional[int], reason: str = ""):
        detail = f"exit code {exit_code}" if exit_code is not None else (reason or "no exit code")
        super().__init__(f"{slot} fetch failed: {detail}")
        self.slot = slot
        self.exit_code = exit_code
        self.reason = reason

    def params(self) -> dict:
        return {"slot": self.slot}


class MuxError(PipelineError):
    """The mux process failed."""

    status_code = 500
    message_key = "error.mux_failed"


class PlanError(PipelineError):
    """A plan reached a stage in a state the planner never produces."""

    status_code = 500
    message_key = "error.plan_invalid"


class DeliveryError(PipelineError):
    """Streaming failed after the response headers were sent."""


class CleanupError(PipelineError):
    """A temp artifact could not be removed."""
