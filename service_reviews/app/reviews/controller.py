"""
Cache-aside control flow for review aggregation requests.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Set

from shared.logging import get_logger

from .aggregator import aggregate
from .models import AggregateResponse, ReviewQuery
from .orchestrator import FetchOrchestrator

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..caching.review_cache import ReviewCache


SOURCE_LIVE = "live"
SOURCE_CACHE = "cache"
SOURCE_EMPTY = "empty"
SOURCE_ERROR = "error"

_CACHE_HEADER_VALUES = {
    SOURCE_LIVE: "MISS",
    SOURCE_CACHE: "HIT",
}


@dataclass(frozen=True)
class AggregationOutcome:
    """Serialized response body plus how it was produced."""

    status_code: int
    body: str
    source: str

    @property
    def from_cache(self) -> bool:
        return self.source == SOURCE_CACHE

    @property
    def headers(self) -> Dict[str, str]:
        value = _CACHE_HEADER_VALUES.get(self.source)
        return {"X-Cache": value} if value else {}


class ReviewAggregationController:
    """Serves live aggregates and falls back to the last cached one."""

    def __init__(
        self,
        orchestrator: FetchOrchestrator,
        cache: "ReviewCache",
        *,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("reviews.controller")
        self._pending_writes: Set[asyncio.Task] = set()

    async def handle(self, query: ReviewQuery, cache_key: str) -> AggregationOutcome:
        """
        Run the aggregation pipeline for one request.

        A non-empty aggregate is returned immediately and written to the cache
        in the background. An empty aggregate or a pipeline failure is
        answered from the cache when an entry exists. Otherwise an empty
        result carries a warning, and a failure becomes a 500.
        """
        failure: Optional[Exception] = None
        try:
            results = await self.orchestrator.fetch_all(query.place_ids, query)
            response = aggregate(
                results,
                rating_filter=query.rating,
                only_with_reviews=query.only_with_reviews,
                sort_by=query.sort_by,
                limit=query.limit,
            )
            if response.total_count > 0:
                body = response.to_json()
                self._schedule_cache_write(cache_key, body)
                return AggregationOutcome(status_code=200, body=body, source=SOURCE_LIVE)

            self.logger.info(
                "No reviews aggregated, trying cache",
                places=len(query.place_ids),
                pages_fetched=response.pages_fetched,
            )
        except Exception as exc:
            failure = exc
            self.logger.error("Review aggregation failed, trying cache", error=str(exc), exc_info=True)

        cached = await self.cache.get(cache_key)
        if cached is not None:
            self._record_cache_event("fallback_hit")
            self.logger.info("Serving cached review aggregate", key=cache_key)
            return AggregationOutcome(status_code=200, body=cached, source=SOURCE_CACHE)

        self._record_cache_event("fallback_miss")
        if failure is not None:
            if self.metrics:
                self.metrics.record_error(type(failure).__name__)
            return AggregationOutcome(
                status_code=500,
                body=json.dumps({"error": str(failure)}),
                source=SOURCE_ERROR,
            )

        return AggregationOutcome(
            status_code=200,
            body=AggregateResponse.empty().to_json(),
            source=SOURCE_EMPTY,
        )

    def _schedule_cache_write(self, cache_key: str, body: str) -> None:
        """Start the cache write without waiting for it."""
        task = asyncio.create_task(self._write_cache(cache_key, body))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write_cache(self, cache_key: str, body: str) -> None:
        try:
            stored = await self.cache.put(cache_key, body)
        except Exception as exc:
            self.logger.error("Cache write failed", key=cache_key, error=str(exc))
            stored = False
        self._record_cache_event("write" if stored else "write_error")

    async def drain(self) -> None:
        """Wait for in-flight cache writes, e.g. on shutdown."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    def _record_cache_event(self, event: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("review_cache_events_total", event=event)
