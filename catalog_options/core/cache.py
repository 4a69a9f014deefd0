from typing import Any, Optional
import json
import logging
import redis
from catalog_options.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.Redis.from_url(
    settings.REDIS_URL,
    decode_responses=True,
    socket_connect_timeout=1,
)

def set_cache(key: str, value: Any, expire: int = settings.CACHE_TTL_SECONDS) -> bool:
    """
    Set a cache value with expiration time
    """
    if not settings.CACHE_ENABLED:
        return False
    try:
        redis_client.setex(key, expire, json.dumps(value, default=str))
        return True
    except Exception:
        logger.debug("cache set failed for %s", key, exc_info=True)
        return False

def get_cache(key: str) -> Optional[Any]:
    """
    Get a cached value
    """
    if not settings.CACHE_ENABLED:
        return None
    try:
        data = redis_client.get(key)
        return json.loads(data) if data else None
    except Exception:
        logger.debug("cache get failed for %s", key, exc_info=True)
        return None

def clear_cache_pattern(pattern: str) -> bool:
    """
    Clear all cache keys matching a pattern
    """
    if not settings.CACHE_ENABLED:
        return False
    try:
        keys = redis_client.keys(pattern)
        if keys:
            redis_client.delete(*keys)
        return True
    except Exception:
        return False
