import logging
from typing import Optional, Tuple

from ytmux.config.settings import config
from ytmux.models.internal import ArtifactTag, PreparedDownload
from ytmux.services.artifacts import ArtifactRegistry
from ytmux.services.catalog import CatalogResolver
from ytmux.services.delivery import media_type_for
from ytmux.services.fetcher import StreamFetcher
from ytmux.services.muxer import Muxer
from ytmux.services.planner import AcquisitionPlanner
from ytmux.utils.filename import sanitize_filename, with_extension

logger = logging.getLogger(__name__)


class DownloadPipeline:
    """Resolve -> plan -> fetch -> mux for one request"""

    def __init__(
        self,
        resolver: Optional[CatalogResolver] = None,
        planner: Optional[AcquisitionPlanner] = None,
        fetcher: Optional[StreamFetcher] = None,
        muxer: Optional[Muxer] = None,
        work_dir: Optional[str] = None
    ):
        self.resolver = resolver or CatalogResolver()
        self.planner = planner or AcquisitionPlanner()
        self.fetcher = fetcher or StreamFetcher()
        self.muxer = muxer or Muxer()
        self.work_dir = work_dir or config.download.work_dir

    async def run(
        self,
        url: str,
        format_id: str,
        filename: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> Tuple[PreparedDownload, ArtifactRegistry]:
        """
        Produce the final artifact. On success the caller owns the
        returned registry and must clean it up once delivery ends; on any
        failure (cancellation included) everything created so far is
        removed before the error propagates.
        """
        registry = ArtifactRegistry(self.work_dir, request_id)
        prepared = None
        try:
            prepared = await self.prepare(url, format_id, filename, registry)
            return prepared, registry
        finally:
            if prepared is None:
                registry.cleanup()

    async def prepare(
        self,
        url: str,
        format_id: str,
        filename: Optional[str],
        registry: ArtifactRegistry
    ) -> PreparedDownload:
        catalog = await self.resolver.resolve(url)
        plan = self.planner.plan(format_id, catalog)
        logger.info("[%s] Plan for %s: video=%s audio=%s",
                    registry.request_id, format_id, plan.video_id, plan.audio_id)

        artifacts = await self.fetcher.fetch_plan(url, plan, registry)

        container = config.download.merge_container if plan.needs_mux else plan.selected.container
        final = registry.create(ArtifactTag.FINAL, ext=container)
        await self.muxer.combine(artifacts, final)

        name = sanitize_filename(filename or "", fallback=config.download.default_filename)
        return PreparedDownload(
            artifact=final,
            container=container,
            media_type=media_type_for(container, audio_only=plan.selected.is_audio_only),
            filename=with_extension(name, container),
            size=final.path.stat().st_size,
        )
