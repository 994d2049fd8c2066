import functools
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError

from ytmux.core.logging import log_info
from ytmux.core.security import admit_url
from ytmux.i18n import i18n
from ytmux.infra.rate_limit import rate_limiter
from ytmux.models.request import InfoRequest
from ytmux.models.response import ErrorResponse, FormatEntry, VideoInfo
from ytmux.services.catalog import CatalogResolver, display_order
from ytmux.utils.locale import get_locale, safe_url_for_log

router = APIRouter()

def get_catalog_resolver() -> CatalogResolver:
    return CatalogResolver()

@router.get(
    "/video-info",
    response_model=VideoInfo,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    dependencies=[Depends(rate_limiter)]
)
async def get_video_info(
    request: Request,
    url: Optional[str] = Query(None, description="Media page URL"),
    resolver: CatalogResolver = Depends(get_catalog_resolver)
):
    """List the formats a URL offers"""
    locale = get_locale(request.headers.get("accept-language"))
    _ = functools.partial(i18n.get, locale=locale)

    try:
        info_request = InfoRequest(url=url or "")
    except ValidationError:
        raise HTTPException(status_code=400, detail=_("error.invalid_url", reason="missing or malformed url"))

    await admit_url(info_request.url, locale)

    log_info(request, _("log.fetching_info", url=safe_url_for_log(info_request.url)))
    catalog = await resolver.resolve(info_request.url)
    log_info(request, _("log.info_retrieved", title=catalog.title, count=len(catalog.formats)))

    return VideoInfo(
        title=catalog.title,
        formats=[
            FormatEntry(
                quality_label=f.quality_label,
                container=f.container,
                itag=f.format_id,
                filesize=f.filesize,
                vcodec=f.vcodec,
                acodec=f.acodec,
            )
            for f in display_order(catalog.formats)
        ]
    )
