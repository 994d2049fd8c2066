from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FormatEntry(BaseModel):
    """Single selectable format"""
    model_config = ConfigDict(populate_by_name=True)

    quality_label: str = Field(alias="qualityLabel")
    container: str
    itag: str
    filesize: Optional[int] = None
    vcodec: Optional[str] = None
    acodec: Optional[str] = None


class VideoInfo(BaseModel):
    """Video information response"""
    title: str
    formats: List[FormatEntry] = []


class ErrorResponse(BaseModel):
    error: str
