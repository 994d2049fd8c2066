import functools
import logging
import os
import secrets
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from ytmux.api import health, info, download
from ytmux.config.settings import config
from ytmux.core.errors import PipelineError
from ytmux.core.logging import setup_logging, log_error, log_warning
from ytmux.core.state import state
from ytmux.i18n import i18n
from ytmux.infra.redis import init_redis, close_redis
from ytmux.services.ytdlp import FFmpegCommandBuilder, YTDLPCommandBuilder, detect_version
from ytmux.utils.locale import get_locale

# Routes answering failures with a plain-text body instead of {"error": ...}
PLAIN_TEXT_ERROR_PATHS = ("/download",)

app = FastAPI(
    title=config.api.title,
    description=config.api.description,
    version=config.api.version,
    docs_url="/docs" if config.api.debug else None,
    redoc_url=None
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    request.state.request_id = request.headers.get("x-request-id") or secrets.token_hex(4)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response

def error_response(request: Request, status_code: int, message: str, headers=None):
    if request.url.path in PLAIN_TEXT_ERROR_PATHS:
        return PlainTextResponse(message, status_code=status_code, headers=headers)
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)

@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    _ = functools.partial(i18n.get, locale=get_locale(request.headers.get("accept-language")))
    log_error(request, f"{type(exc).__name__}: {exc.message}")
    return error_response(request, exc.status_code, _(exc.message_key, **exc.params()))

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        log_error(request, f"HTTP {exc.status_code}: {exc.detail}")
    else:
        log_warning(request, f"HTTP {exc.status_code}: {exc.detail}")
    return error_response(request, exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(err.get("msg", "invalid value") for err in exc.errors())
    return error_response(request, 400, message or "Invalid request")

# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(info.router, tags=["Info"])
app.include_router(download.router, tags=["Download"])

@app.on_event("startup")
async def startup_event():
    setup_logging()
    logger = logging.getLogger("ytmux")

    os.makedirs(config.download.work_dir, exist_ok=True)
    logger.info("Temp artifacts go to %s", os.path.abspath(config.download.work_dir))

    state.ytdlp_version = await detect_version(YTDLPCommandBuilder.build_version_command())
    state.ffmpeg_version = await detect_version(FFmpegCommandBuilder.build_version_command())
    logger.info("yt-dlp: %s | ffmpeg: %s", state.ytdlp_version, state.ffmpeg_version)

    state.redis = await init_redis()

@app.on_event("shutdown")
async def shutdown_event():
    await close_redis()
