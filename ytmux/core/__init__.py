from .errors import (
    CleanupError,
    DeliveryError,
    ExtractionError,
    FetchError,
    FormatNotFoundError,
    MuxError,
    PipelineError,
    PlanError,
)

__all__ = [
    "CleanupError",
    "DeliveryError",
    "ExtractionError",
    "FetchError",
    "FormatNotFoundError",
    "MuxError",
    "PipelineError",
    "PlanError",
]
