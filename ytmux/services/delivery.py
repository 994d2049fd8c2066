import logging
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

import aiofiles
from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from ytmux.config.settings import config
from ytmux.core.errors import DeliveryError
from ytmux.models.internal import PreparedDownload
from ytmux.services.artifacts import ArtifactRegistry

logger = logging.getLogger(__name__)

AUDIO_MEDIA_TYPES = {
    "m4a": "audio/mp4",
    "mp3": "audio/mpeg",
    "webm": "audio/webm",
    "opus": "audio/ogg",
    "ogg": "audio/ogg",
}


def media_type_for(container: str, audio_only: bool = False) -> str:
    """Content type of a delivered container"""
    container = container.lower()
    if audio_only:
        return AUDIO_MEDIA_TYPES.get(container, f"audio/{container}")
    return f"video/{container}"


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and the exact UTF-8 name"""
    ascii_name = filename.encode("ascii", "ignore").decode().strip() or "download"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


class ArtifactStreamingResponse(StreamingResponse):
    """
    StreamingResponse that runs on_close however the exchange ends:
    completed body, failed send, client disconnect or cancellation.
    """

    def __init__(self, *args, on_close: Optional[Callable[[], Awaitable[None]]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            if self.on_close is not None:
                await self.on_close()


class DeliveryService:
    """Stream a prepared download and release its artifacts afterwards"""

    def __init__(self, chunk_size: Optional[int] = None):
        self.chunk_size = chunk_size or config.download.chunk_size

    def headers_for(self, prepared: PreparedDownload) -> Dict[str, str]:
        return {
            'Content-Disposition': content_disposition(prepared.filename),
            'X-Content-Type-Options': 'nosniff',
            'Cache-Control': 'no-cache',
        }

    async def iter_file(self, prepared: PreparedDownload, registry: ArtifactRegistry) -> AsyncIterator[bytes]:
        """
        Yield the final artifact chunk by chunk.
        Headers are already committed once the first chunk is requested,
        so read errors are logged and end the body early. The registry is
        cleaned up however the iteration ends, including when the client
        disconnects and the generator is closed or cancelled.
        """
        path = prepared.artifact.path
        sent = 0
        try:
            async with aiofiles.open(path, 'rb') as f:
                while True:
                    chunk = await f.read(self.chunk_size)
                    if not chunk:
                        break
                    sent += len(chunk)
                    yield chunk
            logger.info("[%s] Delivered %s (%d bytes)", registry.request_id, prepared.filename, sent)
        except OSError as e:
            error = DeliveryError(f"Streaming {path.name} failed after {sent} bytes: {e}")
            logger.error("[%s] %s", registry.request_id, error)
        finally:
            registry.cleanup()

    def build_response(
        self,
        prepared: PreparedDownload,
        registry: ArtifactRegistry,
        on_close: Optional[Callable[[], Awaitable[None]]] = None
    ) -> ArtifactStreamingResponse:
        body = self.iter_file(prepared, registry)

        async def close() -> None:
            # The body may never have started (disconnect before headers)
            await body.aclose()
            registry.cleanup()
            if on_close is not None:
                await on_close()

        return ArtifactStreamingResponse(
            body,
            media_type=prepared.media_type,
            headers=self.headers_for(prepared),
            on_close=close,
        )
