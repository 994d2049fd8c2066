from pydantic import BaseModel, Field, field_validator
from typing import Optional
from urllib.parse import urlparse

class InfoRequest(BaseModel):
    url: str = Field(..., min_length=1, description="Media page URL")

    @field_validator('url')
    @classmethod
    def validate_url_syntax(cls, v):
        """Validate URL syntax only (SSRF check done at endpoint)"""
        v = v.strip()
        parsed = urlparse(v)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("Invalid URL format")
        return v

class DownloadRequest(InfoRequest):
    quality: str = Field(..., min_length=1, description="Format id selected from /video-info (itag)")
    filename: Optional[str] = Field(None, description="Requested download filename")
