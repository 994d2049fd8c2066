import asyncio
import logging
from typing import List, Optional, Protocol

from ytmux.config.settings import config
from ytmux.core.errors import FetchError
from ytmux.models.internal import AcquisitionPlan, ArtifactTag, TempArtifact
from ytmux.services.artifacts import ArtifactRegistry
from ytmux.services.ytdlp import SubprocessExecutor, YTDLPCommandBuilder

logger = logging.getLogger(__name__)

VIDEO_SLOT = "video"
AUDIO_SLOT = "audio"


class StreamSource(Protocol):
    """Writes one format of a URL to a path and reports the exit status.

    Retry or client-identity strategies belong in alternative
    implementations of this protocol, not in the fetcher.
    """

    async def fetch(self, url: str, format_id: str, dest_path: str) -> int:
        """Return the process exit code.

        May raise asyncio.TimeoutError when the ceiling is hit and
        OSError when the downloader cannot be started.
        """
        ...  # pragma: no cover


class YtDlpStreamSource:
    """Fetch a single format with one yt-dlp process"""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or config.download.fetch_timeout_seconds

    async def fetch(self, url: str, format_id: str, dest_path: str) -> int:
        cmd = YTDLPCommandBuilder.build_fetch_command(url, format_id, dest_path)
        result = await SubprocessExecutor.run(cmd, timeout=self.timeout, capture_stdout=False)
        if result.returncode != 0:
            logger.error("yt-dlp exited with %d for format %s: %s",
                         result.returncode, format_id, result.stderr_tail())
        return result.returncode


class StreamFetcher:
    """Run one fetch per populated plan slot"""

    def __init__(self, source: Optional[StreamSource] = None):
        self.source = source or YtDlpStreamSource()

    async def fetch(self, slot: str, url: str, format_id: str, artifact: TempArtifact) -> TempArtifact:
        try:
            exit_code = await self.source.fetch(url, format_id, str(artifact.path))
        except asyncio.TimeoutError:
            raise FetchError(slot, None, reason="timed out")
        except OSError as e:
            raise FetchError(slot, None, reason=f"could not start downloader: {e}") from e

        if exit_code != 0:
            raise FetchError(slot, exit_code)
        if not artifact.exists():
            raise FetchError(slot, exit_code, reason="downloader produced no file")

        logger.info("Fetched %s format %s -> %s", slot, format_id, artifact.path.name)
        return artifact

    async def fetch_plan(
        self,
        url: str,
        plan: AcquisitionPlan,
        registry: ArtifactRegistry
    ) -> List[TempArtifact]:
        """
        Fetch every slot concurrently and wait for all of them.
        Returns the artifacts in slot order (video, audio). If any fetch
        failed, the first failure is raised only after all siblings have
        finished, so nothing downstream starts early.
        """
        jobs = []
        if plan.video_id is not None:
            artifact = registry.create(ArtifactTag.VIDEO_PARTIAL)
            jobs.append(self.fetch(VIDEO_SLOT, url, plan.video_id, artifact))
        if plan.audio_id is not None:
            artifact = registry.create(ArtifactTag.AUDIO_PARTIAL)
            jobs.append(self.fetch(AUDIO_SLOT, url, plan.audio_id, artifact))

        results = await asyncio.gather(*jobs, return_exceptions=True)

        for result in results:
            if isinstance(result, BaseException):
                raise result

        return list(results)
