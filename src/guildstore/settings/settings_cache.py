"""
Read cache for flat settings maps.

Entries are keyed by scope and expire after a TTL. The provider invalidates
exactly the written scope on every set, remove and clear.

Every invalidation bumps the scope's generation. A reader captures the
generation before it goes to the database and only fills the cache if no
write happened in between, so a slow read cannot put a stale map back.
"""

from typing import Dict, Tuple, Optional
import time

from guildstore.settings.row_format import SettingsMap
from guildstore.util.logger import get_logger

logger = get_logger("settings_cache")


class SettingsCache:
    """
    TTL cache of settings maps keyed by scope.

    Cached maps are copied on the way in and out so callers can never mutate
    a cached entry.
    """

    def __init__(self, ttl_seconds: float = 60):
        """
        Args:
            ttl_seconds: Time-to-live in seconds for cached entries (default: 60)
        """
        self._cache: Dict[str, Tuple[float, SettingsMap]] = {}
        self._ttl_seconds = ttl_seconds
        self._generations: Dict[str, int] = {}
        self._epoch = 0
        self._hits = 0
        self._misses = 0

    def get(self, scope: str) -> Optional[SettingsMap]:
        """Return the cached map for a scope, or None if missing or expired."""
        entry = self._cache.get(scope)
        if entry is not None:
            timestamp, settings = entry
            if time.monotonic() - timestamp < self._ttl_seconds:
                self._hits += 1
                logger.debug("[SETTINGS CACHE] Hit for %s", scope)
                return dict(settings)
            del self._cache[scope]
            logger.debug("[SETTINGS CACHE] Expired %s", scope)
        self._misses += 1
        return None

    def generation(self, scope: str) -> int:
        # both counters only grow, so any invalidation or clear changes the sum
        return self._epoch + self._generations.get(scope, 0)

    def set(self, scope: str, settings: SettingsMap, generation: Optional[int] = None) -> bool:
        """
        Cache a scope's map.

        When ``generation`` is given the entry is only stored if the scope has
        not been invalidated since that generation was read.

        Returns:
            True if the entry was stored.
        """
        if generation is not None and generation != self.generation(scope):
            logger.debug("[SETTINGS CACHE] Dropped stale fill for %s", scope)
            return False
        self._cache[scope] = (time.monotonic(), dict(settings))
        logger.debug("[SETTINGS CACHE] Set %s", scope)
        return True

    def invalidate(self, scope: str) -> bool:
        """Drop one scope's entry. Returns True if an entry was removed."""
        self._generations[scope] = self._generations.get(scope, 0) + 1
        removed = self._cache.pop(scope, None) is not None
        if removed:
            logger.debug("[SETTINGS CACHE] Invalidated %s", scope)
        return removed

    def clear(self) -> int:
        """Drop every entry and return how many were removed."""
        count = len(self._cache)
        self._cache.clear()
        self._epoch += 1
        logger.debug("[SETTINGS CACHE] Cleared all %d entries", count)
        return count

    def stats(self) -> Dict[str, float]:
        return {
            "size": len(self._cache),
            "ttl_seconds": self._ttl_seconds,
            "hits": self._hits,
            "misses": self._misses,
        }
