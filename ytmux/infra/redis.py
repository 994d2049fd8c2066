from typing import Optional
import redis.asyncio as aioredis
from redis.exceptions import RedisError
from rich.console import Console
from ytmux.config.settings import config
from ytmux.core.state import state

console = Console()

SLOT_KEY_PATTERN = "ytmux:active_download:*"
COUNTER_KEY = "ytmux:active_downloads_count"

async def _count_live_slots(redis_client: aioredis.Redis) -> int:
    count = 0
    async for _ in redis_client.scan_iter(match=SLOT_KEY_PATTERN, count=100):
        count += 1
    return count

async def init_redis() -> Optional[aioredis.Redis]:
    """Connect to redis; admission control is disabled when it is unreachable"""
    try:
        redis_client = aioredis.from_url(
            config.redis.url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=config.redis.socket_timeout
        )
        await redis_client.ping()

        # Slots from a previous run expire on their own; resync the counter to them
        live = await _count_live_slots(redis_client)
        await redis_client.set(COUNTER_KEY, live)
    except (RedisError, OSError) as e:
        console.print(f"[yellow]⚠ Redis unavailable, rate and concurrency limits disabled: {e}[/yellow]")
        return None

    if live:
        console.print(f"[yellow]✓ Redis connected ({live} downloads still in flight)[/yellow]")
    else:
        console.print("[green]✓ Redis connected[/green]")
    return redis_client

def get_redis() -> Optional[aioredis.Redis]:
    """Get Redis client from state"""
    return state.redis

async def close_redis() -> None:
    if state.redis:
        await state.redis.aclose()
        state.redis = None
        console.print("[dim]✓ Redis connection closed[/dim]")
