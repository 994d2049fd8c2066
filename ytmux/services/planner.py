import logging
from typing import Optional

from ytmux.config.settings import config
from ytmux.core.errors import FormatNotFoundError
from ytmux.models.internal import AcquisitionPlan, Catalog, MediaFormat

logger = logging.getLogger(__name__)


class AcquisitionPlanner:
    """Decide which catalog entries must be fetched for a selection"""

    def __init__(self, rank_audio: Optional[bool] = None):
        self.rank_audio = config.ytdlp.rank_audio if rank_audio is None else rank_audio

    def plan(self, format_id: str, catalog: Catalog) -> AcquisitionPlan:
        selected = catalog.find(format_id)
        if selected is None:
            raise FormatNotFoundError(format_id)

        if not selected.is_video_only:
            return AcquisitionPlan(selected=selected, video_id=selected.format_id)

        audio = self.pick_audio(catalog)
        if audio is None:
            logger.warning(
                "No audio-only format to pair with video-only %s, delivering video only",
                selected.format_id,
            )
            return AcquisitionPlan(selected=selected, video_id=selected.format_id)

        return AcquisitionPlan(
            selected=selected,
            video_id=selected.format_id,
            audio_id=audio.format_id,
        )

    def pick_audio(self, catalog: Catalog) -> Optional[MediaFormat]:
        candidates = [f for f in catalog.formats if f.is_audio_only]
        if not candidates:
            return None
        if not self.rank_audio:
            return candidates[0]

        # max() keeps the earliest entry on ties
        return max(
            candidates,
            key=lambda f: (f.abr or 0, f.tbr or 0, f.filesize or 0),
        )
