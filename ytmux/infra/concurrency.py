import functools
import logging
import uuid

from fastapi import HTTPException, Request
from redis.exceptions import RedisError

from ytmux.config.settings import config
from ytmux.i18n import i18n
from ytmux.infra.redis import COUNTER_KEY, get_redis
from ytmux.utils.locale import get_locale

logger = logging.getLogger(__name__)

# Atomically take a slot if the counter is below the limit
ACQUIRE_SLOT_SCRIPT = """
local current = tonumber(redis.call('GET', KEYS[1]) or "0")
if current >= tonumber(ARGV[1]) then
    return 0
end
redis.call('INCR', KEYS[1])
redis.call('EXPIRE', KEYS[1], tonumber(ARGV[3]))
redis.call('SETEX', KEYS[2], tonumber(ARGV[2]), "1")
return 1
"""

def _slot_ttl() -> int:
    # A slot outlives the longest possible request, then expires by itself
    ceiling = (
        config.download.info_timeout_seconds
        + config.download.fetch_timeout_seconds
        + config.download.mux_timeout_seconds
    )
    return int(ceiling) + 60

class ConcurrencyLimiter:
    """Cap concurrent /download requests across workers (FastAPI dependency)"""

    async def __call__(self, request: Request):
        redis = get_redis()
        if not redis:
            return True

        slot_key = f"ytmux:active_download:{uuid.uuid4()}"
        slot_ttl = _slot_ttl()

        try:
            allowed = await redis.eval(
                ACQUIRE_SLOT_SCRIPT,
                2,
                COUNTER_KEY,
                slot_key,
                config.download.max_concurrent,
                slot_ttl,
                slot_ttl * 2
            )
        except RedisError as e:
            logger.warning("Concurrency limiter unavailable, letting request through: %s", e)
            return True

        if not allowed:
            _ = functools.partial(i18n.get, locale=get_locale(request.headers.get("accept-language")))
            raise HTTPException(
                status_code=503,
                detail=_("error.server_busy", max=config.download.max_concurrent)
            )

        request.state.download_slot_key = slot_key
        return True

async def release_download_slot(request: Request):
    """Give the request's slot back; safe to call more than once"""
    slot_key = getattr(request.state, "download_slot_key", None)
    if not slot_key:
        return
    request.state.download_slot_key = None

    redis = get_redis()
    if not redis:
        return
    try:
        if await redis.delete(slot_key):
            await redis.decr(COUNTER_KEY)
    except RedisError as e:
        logger.warning("Could not release download slot %s: %s", slot_key, e)

concurrency_limiter = ConcurrencyLimiter()
