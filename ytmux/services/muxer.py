import asyncio
import logging
import shutil
from typing import List, Optional

from ytmux.config.settings import config
from ytmux.core.errors import MuxError, PlanError
from ytmux.models.internal import TempArtifact
from ytmux.services.ytdlp import FFmpegCommandBuilder, SubprocessExecutor

logger = logging.getLogger(__name__)


class Muxer:
    """Turn the fetched artifacts into the single final file"""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or config.download.mux_timeout_seconds

    async def combine(self, artifacts: List[TempArtifact], target: TempArtifact) -> TempArtifact:
        if len(artifacts) == 2:
            video, audio = artifacts
            await self.mux(video, audio, target)
        elif len(artifacts) == 1:
            await self.copy(artifacts[0], target)
        else:
            raise PlanError(f"Muxer needs one or two artifacts, got {len(artifacts)}")
        return target

    async def mux(self, video: TempArtifact, audio: TempArtifact, target: TempArtifact) -> None:
        """Stream-copy both tracks into the target container, no re-encode"""
        cmd = FFmpegCommandBuilder.build_mux_command(str(video.path), str(audio.path), str(target.path))

        try:
            result = await SubprocessExecutor.run(cmd, timeout=self.timeout, capture_stdout=False)
        except asyncio.TimeoutError:
            raise MuxError(f"ffmpeg timed out after {self.timeout}s")
        except OSError as e:
            raise MuxError(f"ffmpeg could not be started: {e}") from e

        if result.returncode != 0:
            raise MuxError(f"ffmpeg exited with code {result.returncode}: {result.stderr_tail()}")
        if not target.exists():
            raise MuxError("ffmpeg produced no output file")

        logger.info("Muxed %s + %s -> %s", video.path.name, audio.path.name, target.path.name)

    async def copy(self, source: TempArtifact, target: TempArtifact) -> None:
        """Byte-for-byte copy of a single artifact"""
        try:
            await asyncio.to_thread(shutil.copyfile, source.path, target.path)
        except OSError as e:
            raise MuxError(f"Copy of {source.path.name} failed: {e}") from e

        logger.info("Copied %s -> %s", source.path.name, target.path.name)
