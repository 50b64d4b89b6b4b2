"""
Runtime statistics cache.

Keeps the last good RuntimeStats in memory and in a JSON file so that a
refresh that comes back without extended history does not blank the
dashboard.
"""

import json
import logging
import os

from .models import RuntimeStats
from .runtime_stats import merge_with_previous

logger = logging.getLogger(__name__)


class RuntimeStatsCache:
    """Memory cache in front of a JSON file."""

    def __init__(self, path: str | None):
        """Initialize cache.

        Args:
            path: JSON file path, or None for a memory-only cache
        """
        self.path = path
        self._memory: RuntimeStats | None = None

    def get_cached(self) -> RuntimeStats | None:
        """Cached stats, or None if nothing was stored yet."""
        if self._memory is not None:
            return self._memory

        if not self.path or not os.path.exists(self.path):
            return None

        try:
            with open(self.path) as f:
                self._memory = RuntimeStats.from_dict(json.load(f))
            logger.debug(f"Loaded cached runtime stats from {self.path}")
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring unreadable runtime stats cache {self.path}: {e}")
            return None

        return self._memory

    def save(self, stats: RuntimeStats):
        self._memory = stats
        if not self.path:
            return

        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(stats.to_dict(), f, indent=2)
        except OSError as e:
            logger.warning(f"Could not write runtime stats cache {self.path}: {e}")

    def merge_with_cache(self, fresh: RuntimeStats) -> RuntimeStats:
        """Fill gaps in fresh stats from the cache and store the result."""
        merged = merge_with_previous(fresh, self.get_cached())
        self.save(merged)
        return merged

    def clear(self):
        self._memory = None
        if self.path and os.path.exists(self.path):
            try:
                os.remove(self.path)
                logger.info("Cleared runtime stats cache")
            except OSError as e:
                logger.warning(f"Could not remove runtime stats cache {self.path}: {e}")
