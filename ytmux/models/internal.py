from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

NO_CODEC = "none"


class MediaFormat(BaseModel):
    """One entry of the extractor's format catalog"""
    format_id: str
    vcodec: Optional[str] = None
    acodec: Optional[str] = None
    container: str = "mp4"
    filesize: Optional[int] = None
    height: Optional[int] = None
    abr: Optional[float] = None
    tbr: Optional[float] = None
    quality_label: str = "Unknown"

    @property
    def has_video(self) -> bool:
        return self.vcodec != NO_CODEC

    @property
    def has_audio(self) -> bool:
        return self.acodec != NO_CODEC

    @property
    def is_video_only(self) -> bool:
        return self.has_video and not self.has_audio

    @property
    def is_audio_only(self) -> bool:
        return self.has_audio and not self.has_video


class Catalog(BaseModel):
    """Formats offered for one URL, in extractor order"""
    title: str = "Unknown"
    formats: List[MediaFormat] = Field(default_factory=list)

    def find(self, format_id: str) -> Optional[MediaFormat]:
        for media_format in self.formats:
            if media_format.format_id == format_id:
                return media_format
        return None


class AcquisitionPlan(BaseModel):
    """Streams that must be fetched to satisfy one selection"""
    selected: MediaFormat
    video_id: Optional[str] = None
    audio_id: Optional[str] = None

    @property
    def needs_mux(self) -> bool:
        return self.video_id is not None and self.audio_id is not None


class ArtifactTag(str, Enum):
    VIDEO_PARTIAL = "video-partial"
    AUDIO_PARTIAL = "audio-partial"
    FINAL = "final"


class TempArtifact(BaseModel):
    """Request-owned file in the work directory"""
    path: Path
    tag: ArtifactTag

    def exists(self) -> bool:
        return self.path.is_file()


class PreparedDownload(BaseModel):
    """Final artifact ready to be streamed"""
    artifact: TempArtifact
    container: str
    media_type: str
    filename: str
    size: int
