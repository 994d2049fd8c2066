import functools
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError

from ytmux.core.logging import log_info
from ytmux.core.security import admit_url
from ytmux.i18n import i18n
from ytmux.infra.concurrency import concurrency_limiter, release_download_slot
from ytmux.infra.rate_limit import rate_limiter
from ytmux.models.request import DownloadRequest
from ytmux.services.delivery import DeliveryService
from ytmux.services.pipeline import DownloadPipeline
from ytmux.utils.locale import get_locale, safe_url_for_log

router = APIRouter()

def get_pipeline() -> DownloadPipeline:
    return DownloadPipeline()

def get_delivery() -> DeliveryService:
    return DeliveryService()

@router.get("/download", dependencies=[Depends(rate_limiter), Depends(concurrency_limiter)])
async def download_video(
    request: Request,
    url: Optional[str] = Query(None, description="Media page URL"),
    quality: Optional[str] = Query(None, description="Format id (itag) from /video-info"),
    filename: Optional[str] = Query(None, description="Name for the downloaded file"),
    pipeline: DownloadPipeline = Depends(get_pipeline),
    delivery: DeliveryService = Depends(get_delivery)
):
    """Fetch the selected format (muxing in audio when needed) and stream one file"""
    locale = get_locale(request.headers.get("accept-language"))
    _ = functools.partial(i18n.get, locale=locale)

    try:
        if not url or not quality:
            raise HTTPException(status_code=400, detail=_("error.missing_params"))

        try:
            download_request = DownloadRequest(url=url, quality=quality, filename=filename)
        except ValidationError:
            raise HTTPException(status_code=400, detail=_("error.invalid_url", reason="malformed url"))

        await admit_url(download_request.url, locale)

        log_info(request, _(
            "log.starting_download",
            format_id=download_request.quality,
            url=safe_url_for_log(download_request.url)
        ))
        prepared, registry = await pipeline.run(
            download_request.url,
            download_request.quality,
            download_request.filename,
            request_id=getattr(request.state, "request_id", None)
        )
    except BaseException:
        # Cancellation included: the slot would otherwise stay held until its TTL
        await release_download_slot(request)
        raise

    log_info(request, _("log.download_ready", filename=prepared.filename, size=prepared.size))

    return delivery.build_response(
        prepared,
        registry,
        on_close=functools.partial(release_download_slot, request)
    )
