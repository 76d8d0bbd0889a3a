"""Request rate limiting (slowapi).

Limits are per client IP. Counters live in Redis when CACHE_BACKEND=redis
and the server answers a ping at import time; otherwise each worker
counts in memory. Search and upload carry their own tighter limits
(settings.rate_limit_search / rate_limit_upload); /health is exempt.
"""

from loguru import logger
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings


def _resolve_storage() -> str | None:
    """Storage URI for the limiter, or None for in-memory counters."""
    if settings.cache_backend != "redis" or not settings.redis_url:
        return None
    import redis as redis_lib

    try:
        redis_lib.from_url(settings.redis_url, socket_connect_timeout=2).ping()
    except Exception as e:
        logger.warning("Rate limiter falling back to memory, Redis ping failed: {}", e)
        return None
    logger.info("Rate limiter counters stored in Redis")
    return settings.redis_url


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
    storage_uri=_resolve_storage(),
)
