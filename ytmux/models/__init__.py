from .internal import AcquisitionPlan, ArtifactTag, Catalog, MediaFormat, PreparedDownload, TempArtifact
from .request import DownloadRequest, InfoRequest
from .response import ErrorResponse, FormatEntry, VideoInfo

__all__ = [
    "AcquisitionPlan",
    "ArtifactTag",
    "Catalog",
    "DownloadRequest",
    "ErrorResponse",
    "FormatEntry",
    "InfoRequest",
    "MediaFormat",
    "PreparedDownload",
    "TempArtifact",
    "VideoInfo",
]
