from fastapi import APIRouter
from redis.exceptions import RedisError

from ytmux.config.settings import config
from ytmux.core.state import state
from ytmux.i18n import i18n

router = APIRouter()


async def _redis_status() -> str:
    if not state.redis:
        return i18n.get("response.redis_disabled")
    try:
        await state.redis.ping()
    except (RedisError, OSError):
        return i18n.get("response.redis_disconnected")
    return i18n.get("response.redis_connected")


@router.get("/")
async def root():
    """Root endpoint"""
    return {
        "status": i18n.get("response.status_running"),
        "service": config.api.title,
        "version": config.api.version,
    }


@router.get("/health")
async def health_check():
    """Liveness plus external tool availability"""
    return {
        "status": i18n.get("health.status"),
        "redis": await _redis_status(),
        "ytdlp_version": state.ytdlp_version,
        "ffmpeg_version": state.ffmpeg_version,
    }
