"""
Caching layer for parsed routes.

Provides:
- Thread-safe LRU cache with TTL
- Cache statistics and monitoring
- Global cache helpers
"""

import logging
import threading
import time
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .route import Route, parse

logger = logging.getLogger("biroute.cache")

CacheKey = Tuple[str, bool]


@dataclass
class CacheStats:
    """Cache statistics for monitoring."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    errors: int = 0
    total_compile_time: float = 0.0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "errors": self.errors,
            "total_compile_time": self.total_compile_time,
            "hit_rate": self.hit_rate,
        }


@dataclass
class CacheEntry:
    """Cache entry with metadata."""
    route: Route
    created_at: float
    last_accessed: float
    access_count: int
    compile_time: float

    def is_expired(self, ttl: Optional[float], now: Optional[float] = None) -> bool:
        if ttl is None:
            return False
        if now is None:
            now = time.monotonic()
        return now - self.created_at > ttl


class RouteCache:
    """Thread-safe LRU cache of parsed routes with TTL support."""

    def __init__(
        self,
        max_size: int = 1000,
        ttl: Optional[float] = None,
        enable_stats: bool = True,
    ):
        """
        Initialize route cache.

        Args:
            max_size: Maximum number of routes to cache (0 disables storing)
            ttl: Time-to-live in seconds (None = no expiration)
            enable_stats: Enable statistics collection
        """
        self.max_size = max_size
        self.ttl = ttl
        self.enable_stats = enable_stats

        self._cache: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._stats = CacheStats()

    def get(self, pattern: str, end: bool = False) -> Optional[Route]:
        """Get a cached route, or None."""
        key = (pattern, end)

        with self._lock:
            entry = self._cache.get(key)

            if entry is None:
                if self.enable_stats:
                    self._stats.misses += 1
                return None

            now = time.monotonic()
            if entry.is_expired(self.ttl, now):
                del self._cache[key]
                if self.enable_stats:
                    self._stats.evictions += 1
                    self._stats.misses += 1
                return None

            self._cache.move_to_end(key)
            entry.last_accessed = now
            entry.access_count += 1

            if self.enable_stats:
                self._stats.hits += 1

            return entry.route

    def put(self, pattern: str, route: Route, compile_time: float = 0.0, end: bool = False):
        """Store a route in the cache."""
        key = (pattern, end)
        now = time.monotonic()

        with self._lock:
            if self.max_size <= 0:
                return

            while len(self._cache) >= self.max_size and key not in self._cache:
                evicted, _ = self._cache.popitem(last=False)
                logger.debug("Evicted route %r from cache", evicted[0])
                if self.enable_stats:
                    self._stats.evictions += 1

            self._cache[key] = CacheEntry(
                route=route,
                created_at=now,
                last_accessed=now,
                access_count=0,
                compile_time=compile_time,
            )
            self._cache.move_to_end(key)

    def get_or_parse(self, pattern: str, end: bool = False) -> Route:
        """
        Parse a pattern with caching.

        The matcher and interpolator are compiled eagerly so that a cached
        route is ready to use.

        Raises:
            PatternSyntaxError: Invalid pattern syntax
            PatternSemanticError: Invalid pattern semantics
        """
        cached = self.get(pattern, end)
        if cached is not None:
            return cached

        start_time = time.perf_counter()
        try:
            route = parse(pattern, end)
            route.matcher
            route.interpolator
        except Exception:
            if self.enable_stats:
                with self._lock:
                    self._stats.errors += 1
            raise

        compile_time = time.perf_counter() - start_time
        self.put(pattern, route, compile_time, end)
        if self.enable_stats:
            with self._lock:
                self._stats.total_compile_time += compile_time
        return route

    def invalidate(self, pattern: Optional[str] = None, end: Optional[bool] = None):
        """
        Invalidate cache entries.

        Args:
            pattern: Specific pattern to invalidate (None = clear all)
            end: Only invalidate the entry with this end flag (None = both)
        """
        with self._lock:
            if pattern is None:
                self._cache.clear()
                return
            for flag in ((end,) if end is not None else (False, True)):
                self._cache.pop((pattern, flag), None)

    def get_stats(self) -> CacheStats:
        """Snapshot of cache statistics."""
        with self._lock:
            return CacheStats(
                hits=self._stats.hits,
                misses=self._stats.misses,
                evictions=self._stats.evictions,
                errors=self._stats.errors,
                total_compile_time=self._stats.total_compile_time,
            )

    def reset_stats(self):
        with self._lock:
            self._stats = CacheStats()

    @contextmanager
    def disabled(self):
        """Context manager to temporarily disable storing."""
        old_size = self.max_size
        self.max_size = 0
        try:
            yield
        finally:
            self.max_size = old_size

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, pattern: str) -> bool:
        with self._lock:
            return (pattern, False) in self._cache or (pattern, True) in self._cache


# Global cache instance
_global_cache: Optional[RouteCache] = None
_global_lock = threading.Lock()


def get_global_cache() -> RouteCache:
    """Get or create global cache instance."""
    global _global_cache
    with _global_lock:
        if _global_cache is None:
            _global_cache = RouteCache()
        return _global_cache


def set_global_cache(cache: Optional[RouteCache]):
    """Set global cache instance."""
    global _global_cache
    with _global_lock:
        _global_cache = cache


def compile_route(pattern: str, end: bool = False, use_cache: bool = True) -> Route:
    """
    Parse a pattern into a route, optionally through the global cache.

    Args:
        pattern: Pattern string
        end: Whether the route must consume the whole path
        use_cache: Whether to use the global cache
    """
    if use_cache:
        return get_global_cache().get_or_parse(pattern, end)
    return parse(pattern, end)
