import logging
import os
import secrets
import time
from pathlib import Path
from typing import List, Optional

from ytmux.config.settings import config
from ytmux.core.errors import CleanupError
from ytmux.models.internal import ArtifactTag, TempArtifact

logger = logging.getLogger(__name__)


class ArtifactRegistry:
    """
    Temp files owned by one request.

    Every path handed out is unique (millisecond timestamp plus a random
    token), so concurrent requests share the work directory without
    locking. cleanup() deletes each registered path once; later calls
    are no-ops.
    """

    def __init__(self, work_dir: Optional[str] = None, request_id: Optional[str] = None):
        self.work_dir = Path(work_dir or config.download.work_dir)
        self.request_id = request_id or secrets.token_hex(4)
        self._artifacts: List[TempArtifact] = []
        self._closed = False

    @property
    def artifacts(self) -> List[TempArtifact]:
        return list(self._artifacts)

    def create(self, tag: ArtifactTag, ext: str = "tmp") -> TempArtifact:
        if self._closed:
            raise RuntimeError("Artifact registry already cleaned up")

        self.work_dir.mkdir(parents=True, exist_ok=True)
        stamp = int(time.time() * 1000)
        token = secrets.token_hex(8)
        path = self.work_dir / f"{stamp}_{token}_{tag.value}.{ext}"

        artifact = TempArtifact(path=path, tag=tag)
        self._artifacts.append(artifact)
        return artifact

    def cleanup(self) -> None:
        if self._closed:
            return
        self._closed = True

        artifacts, self._artifacts = self._artifacts, []
        for artifact in artifacts:
            try:
                os.remove(artifact.path)
            except FileNotFoundError:
                # Stage failed before writing it
                continue
            except OSError as e:
                error = CleanupError(f"Could not remove {artifact.path}: {e}")
                logger.error("[%s] %s", self.request_id, error)
                continue
            logger.debug("[%s] Removed %s artifact %s", self.request_id, artifact.tag.value, artifact.path)

    def __enter__(self) -> "ArtifactRegistry":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
