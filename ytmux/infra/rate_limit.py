import functools
import logging

from fastapi import HTTPException, Request
from redis.exceptions import RedisError

from ytmux.config.settings import config
from ytmux.i18n import i18n
from ytmux.infra.redis import get_redis
from ytmux.utils.locale import get_locale

logger = logging.getLogger(__name__)

# Fixed window counter; returns {allowed, seconds_until_reset}
RATE_LIMIT_SCRIPT = """
local current = redis.call('INCR', KEYS[1])
if current == 1 then
    redis.call('EXPIRE', KEYS[1], tonumber(ARGV[2]))
end
if current > tonumber(ARGV[1]) then
    return {0, redis.call('TTL', KEYS[1])}
end
return {1, 0}
"""

class RedisRateLimiter:
    """Per-client, per-endpoint request limiter (FastAPI dependency)"""

    async def __call__(self, request: Request):
        if not config.rate_limit.enabled:
            return True

        redis = get_redis()
        if not redis:
            return True

        client_ip = request.client.host if request.client else "unknown"
        key = f"ytmux:rate:{client_ip}:{request.url.path}"

        try:
            allowed, ttl = await redis.eval(
                RATE_LIMIT_SCRIPT,
                1,
                key,
                config.rate_limit.max_requests,
                config.rate_limit.window_seconds
            )
        except RedisError as e:
            logger.warning("Rate limiter unavailable, letting request through: %s", e)
            return True

        if not allowed:
            _ = functools.partial(i18n.get, locale=get_locale(request.headers.get("accept-language")))
            raise HTTPException(
                status_code=429,
                detail=_("error.rate_limit", seconds=ttl),
                headers={"Retry-After": str(ttl)}
            )
        return True

rate_limiter = RedisRateLimiter()
