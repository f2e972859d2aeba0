"""
Time-boxed cache for dashboard metrics.

Entries are keyed by ``(entity_id, timeframe)`` and expire after a fixed TTL.
Concurrent misses for the same key share one in-flight fetch, so there is at
most one outstanding backend request per key at any time.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

from ..config import CONFIG

logger = logging.getLogger(__name__)


class Timeframe(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def coerce(cls, value: Union["Timeframe", str, None]) -> "Timeframe":
        """Parse user input, falling back to ``month`` like the dashboard does."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.MONTH


@dataclass(frozen=True)
class MetricsCacheEntry:
    entity_id: str
    timeframe: Timeframe
    value: Any
    fetched_at: float


CacheKey = Tuple[str, Timeframe]


class MetricsCache:
    """In-memory TTL cache with per-key request de-duplication."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = CONFIG.metrics_cache_ttl_seconds if ttl_seconds is None else float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[CacheKey, MetricsCacheEntry] = {}
        self._in_flight: Dict[CacheKey, "asyncio.Future[Any]"] = {}

    @staticmethod
    def _key(entity_id: str, timeframe: Union[Timeframe, str]) -> CacheKey:
        return str(entity_id), Timeframe.coerce(timeframe)

    def get(self, entity_id: str, timeframe: Union[Timeframe, str]) -> Optional[Any]:
        key = self._key(entity_id, timeframe)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.value

    def set(self, entity_id: str, timeframe: Union[Timeframe, str], value: Any) -> MetricsCacheEntry:
        entity, frame = self._key(entity_id, timeframe)
        entry = MetricsCacheEntry(entity_id=entity, timeframe=frame, value=value, fetched_at=self._clock())
        self._entries[(entity, frame)] = entry
        return entry

    def invalidate(self, entity_id: Optional[str] = None) -> int:
        """Drop one entity's entries, or everything. Returns how many were removed."""
        if entity_id is None:
            removed = len(self._entries)
            self._entries.clear()
            return removed
        keys = [key for key in self._entries if key[0] == str(entity_id)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def is_fetching(self, entity_id: str, timeframe: Union[Timeframe, str]) -> bool:
        return self._key(entity_id, timeframe) in self._in_flight

    async def get_or_fetch(
        self,
        entity_id: str,
        timeframe: Union[Timeframe, str],
        fetcher: Callable[[], Awaitable[Any]],
        *,
        force: bool = False,
    ) -> Any:
        key = self._key(entity_id, timeframe)

        if not force:
            cached = self.get(*key)
            if cached is not None:
                logger.debug("Metrics cache hit for %s/%s", key[0], key[1].value)
                return cached

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight metrics fetch for %s/%s", key[0], key[1].value)
            return await asyncio.shield(pending)

        loop = asyncio.get_running_loop()
        future: "asyncio.Future[Any]" = loop.create_future()
        self._in_flight[key] = future
        try:
            value = await fetcher()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so a fetch nobody else joined does not warn on GC.
            future.exception()
            raise
        else:
            self.set(key[0], key[1], value)
            future.set_result(value)
            return value
        finally:
            self._in_flight.pop(key, None)


__all__ = ["CacheKey", "MetricsCache", "MetricsCacheEntry", "Timeframe"]
