import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from ytmux.config.settings import config
from ytmux.core.errors import ExtractionError
from ytmux.models.internal import NO_CODEC, Catalog, MediaFormat
from ytmux.services.ytdlp import SubprocessExecutor, YTDLPCommandBuilder

logger = logging.getLogger(__name__)


def quality_label(raw: Dict[str, Any]) -> str:
    """'<height>p' for anything with a height, else Audio/Unknown"""
    height = raw.get("height")
    if height:
        return f"{int(height)}p"
    if raw.get("acodec") != NO_CODEC:
        return "Audio"
    return "Unknown"


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def normalize_format(raw: Dict[str, Any]) -> MediaFormat:
    """Map one raw extractor entry to a MediaFormat"""
    format_id = raw.get("format_id")
    if format_id is None:
        raise ExtractionError("Format entry without format_id")

    return MediaFormat(
        format_id=str(format_id),
        vcodec=raw.get("vcodec"),
        acodec=raw.get("acodec"),
        container=raw.get("ext") or "mp4",
        filesize=_as_int(raw.get("filesize") or raw.get("filesize_approx")),
        height=_as_int(raw.get("height")),
        abr=_as_float(raw.get("abr")),
        tbr=_as_float(raw.get("tbr")),
        quality_label=quality_label(raw),
    )


def parse_catalog(payload: bytes) -> Catalog:
    """Parse `--dump-single-json` output into a Catalog"""
    try:
        info = json.loads(payload.decode(errors="replace"))
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Extractor output is not JSON: {e}") from e

    if not isinstance(info, dict):
        raise ExtractionError("Extractor output is not an object")

    raw_formats = info.get("formats")
    if not isinstance(raw_formats, list):
        raise ExtractionError("Extractor output has no format list")

    return Catalog(
        title=info.get("title") or "Unknown",
        formats=[normalize_format(raw) for raw in raw_formats if isinstance(raw, dict)],
    )


def display_order(formats: List[MediaFormat]) -> List[MediaFormat]:
    """Formats with a height first (tallest first), then the rest by ascending size"""
    with_height = sorted(
        (f for f in formats if f.height),
        key=lambda f: f.height,
        reverse=True,
    )
    without_height = sorted(
        (f for f in formats if not f.height),
        key=lambda f: f.filesize or 0,
    )
    return with_height + without_height


class CatalogResolver:
    """Resolve the format catalog of a URL through yt-dlp"""

    async def resolve(self, url: str) -> Catalog:
        cmd = YTDLPCommandBuilder.build_info_command(url)

        try:
            result = await SubprocessExecutor.run(cmd, timeout=config.download.info_timeout_seconds)
        except asyncio.TimeoutError:
            raise ExtractionError(
                f"Info extractor timed out after {config.download.info_timeout_seconds}s"
            )
        except OSError as e:
            raise ExtractionError(f"Info extractor could not be started: {e}") from e

        if result.returncode != 0:
            raise ExtractionError(
                f"Info extractor exited with code {result.returncode}: {result.stderr_tail()}"
            )

        catalog = parse_catalog(result.stdout)
        logger.info("Resolved %d formats for %r", len(catalog.formats), catalog.title)
        return catalog
