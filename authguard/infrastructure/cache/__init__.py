"""Cache: Redis and in-memory backends.

Both satisfy ICacheService; create_cache() picks one from settings.
Key format lives in authguard.core.cache_keys (DRY).
"""

from authguard.core.config import Settings, get_settings
from authguard.infrastructure.cache.memory_cache import InMemoryCacheService
from authguard.infrastructure.cache.redis_cache import CacheService


def create_cache(settings: Settings | None = None) -> CacheService | InMemoryCacheService:
    """Return the backend selected by settings.cache_backend (not yet connected)."""
    settings = settings or get_settings()
    if settings.cache_backend == "redis":
        return CacheService()
    return InMemoryCacheService()


__all__ = [
    "CacheService",
    "InMemoryCacheService",
    "create_cache",
]
