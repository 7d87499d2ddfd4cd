"""Access pattern evaluator.

Runs access patterns against request contexts with an expiring result
cache, and picks the best match among several results.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import math
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any

from ..utils.errors import PatternEvaluationError
from .base import AccessContext, AccessPattern, AccessPatternResult

logger = logging.getLogger(__name__)

# Share of the cache dropped (oldest first) when it is full of live entries
CACHE_EVICTION_FRACTION = 0.2


@dataclass
class CacheEntry:
    """A cached evaluation result."""

    key: str
    result: AccessPatternResult
    timestamp: float


class AccessPatternEvaluator:
    """Evaluates access patterns with caching and best-match selection.

    Errors raised by a pattern are converted into a deny result that is
    never cached, so a transient failure cannot poison later requests.

    Example:
        evaluator = AccessPatternEvaluator(cache_ttl_seconds=60)
        results = await evaluator.evaluate_all(patterns, context)
        decision = evaluator.best_match(results)
    """

    def __init__(
        self,
        enable_caching: bool = True,
        max_cache_size: int = 1000,
        cache_ttl_seconds: float = 300.0,
        log_evaluations: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the evaluator.

        Args:
            enable_caching: Cache evaluation results
            max_cache_size: Number of entries that triggers eviction
            cache_ttl_seconds: Age after which a cached entry is ignored
            log_evaluations: Log every evaluation result at DEBUG level
            clock: Monotonic time source, in seconds
        """
        self.cache_enabled = enable_caching
        self.max_cache_size = max_cache_size
        self.cache_ttl_seconds = cache_ttl_seconds
        self.log_evaluations = log_evaluations
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    async def evaluate(self, pattern: AccessPattern, context: AccessContext) -> AccessPatternResult:
        """Evaluate one pattern against a context.

        Returns:
            The pattern's decision with ``pattern_id`` and
            ``metadata["priority"]`` stamped on; a deny when the pattern
            does not apply or raises
        """
        cache_key = self._cache_key(pattern, context) if self.cache_enabled else None

        if cache_key is not None:
            cached = self._get_cached(cache_key)
            if cached is not None:
                self._hits += 1
                return cached
            self._misses += 1

        try:
            if not await pattern.applies_to(context):
                result = AccessPatternResult(
                    allowed=False,
                    reason="Pattern does not apply to this context",
                    pattern_id=pattern.id,
                    metadata={"priority": pattern.priority, "applicable": False},
                )
            else:
                validated = await pattern.validate(context)
                result = replace(
                    validated,
                    pattern_id=pattern.id,
                    metadata={
                        **validated.metadata,
                        "priority": pattern.priority,
                        "applicable": True,
                    },
                )
        except Exception as e:
            error = PatternEvaluationError(pattern.id, e)
            logger.warning(f"{error} (requester={context.requester_id})")
            return AccessPatternResult(
                allowed=False,
                reason=str(error),
                pattern_id=pattern.id,
                metadata={"priority": pattern.priority, "error": type(e).__name__},
            )

        if self.log_evaluations:
            logger.debug(
                f"Pattern {pattern.id} -> allowed={result.allowed} "
                f"for {context.requester_id} {context.operation_name} {context.resource}"
            )

        if cache_key is not None:
            self._store(cache_key, result)

        return result

    async def evaluate_all(
        self,
        patterns: Iterable[AccessPattern],
        context: AccessContext,
    ) -> list[AccessPatternResult]:
        """Evaluate several patterns concurrently.

        Results are returned in the same order as ``patterns``.
        """
        return list(await asyncio.gather(*(self.evaluate(p, context) for p in patterns)))

    @staticmethod
    def best_match(results: Iterable[AccessPatternResult]) -> AccessPatternResult | None:
        """Pick the winning result.

        Orders by priority (higher first); at equal priority an allow beats
        a deny. Results without a pattern id are ignored.

        Returns:
            The best result, or None for empty input
        """
        candidates = [r for r in results if r.pattern_id is not None]
        if not candidates:
            return None
        return min(candidates, key=lambda r: (-r.priority, not r.allowed))

    def clear_cache(self) -> None:
        """Drop every cached result."""
        self._cache.clear()
        self._hits = 0
        self._misses = 0

    def get_cache_stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with size, hits, misses, hit_rate, max_size, enabled and
            ttl_seconds
        """
        lookups = self._hits + self._misses
        return {
            "size": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / lookups if lookups else 0.0,
            "max_size": self.max_cache_size,
            "enabled": self.cache_enabled,
            "ttl_seconds": self.cache_ttl_seconds,
        }

    def _cache_key(self, pattern: AccessPattern, context: AccessContext) -> str:
        raw = "\x00".join(
            [pattern.id, context.requester_id, context.operation_name, str(context.resource)]
        )
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.cache_ttl_seconds

    def _get_cached(self, cache_key: str) -> AccessPatternResult | None:
        entry = self._cache.get(cache_key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._cache[cache_key]
            return None
        return entry.result

    def _store(self, cache_key: str, result: AccessPatternResult) -> None:
        if len(self._cache) >= self.max_cache_size:
            self._evict()
        self._cache[cache_key] = CacheEntry(key=cache_key, result=result, timestamp=self._clock())

    def _evict(self) -> None:
        """Purge expired entries, then the oldest fifth if still full."""
        now = self._clock()
        expired = [key for key, entry in self._cache.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._cache[key]

        if len(self._cache) >= self.max_cache_size:
            count = max(1, math.floor(self.max_cache_size * CACHE_EVICTION_FRACTION))
            oldest = sorted(self._cache.values(), key=lambda entry: entry.timestamp)[:count]
            for entry in oldest:
                del self._cache[entry.key]
            logger.debug(f"Evicted {len(oldest)} oldest cache entries")
