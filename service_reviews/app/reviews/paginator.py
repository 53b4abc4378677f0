"""
Page-by-page review retrieval for a single place.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, List, Optional

from shared.errors import ExternalServiceError
from shared.logging import get_logger

from .models import PlaceFetchResult, Review, tag_review

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..adapters.review_search_client import ReviewSearchClient


DEFAULT_MAX_PAGES = 20
DEFAULT_PAGE_DELAY_SECONDS = 0.2


class ReviewPaginator:
    """Drives the upstream pagination loop for one place identifier."""

    def __init__(
        self,
        client: "ReviewSearchClient",
        *,
        max_pages: int = DEFAULT_MAX_PAGES,
        page_delay_seconds: float = DEFAULT_PAGE_DELAY_SECONDS,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.client = client
        self.max_pages = max_pages
        self.page_delay_seconds = page_delay_seconds
        self.metrics = metrics
        self.logger = get_logger("reviews.paginator")

    async def paginate(
        self,
        place_id: str,
        api_key: str,
        language: str,
        sort_by: str,
        start_token: Optional[str] = None,
        fetch_all: bool = False,
        max_pages: Optional[int] = None,
    ) -> PlaceFetchResult:
        """
        Collect review pages for ``place_id``.

        Only the first page is requested unless ``fetch_all`` is set, in which
        case pages are followed until the upstream stops returning a
        continuation token or the page cap is reached. An upstream error ends
        pagination for this place; reviews from earlier pages are kept.
        """
        page_cap = self.max_pages if max_pages is None else max_pages
        reviews: List[Review] = []
        pages_fetched = 0
        next_page_token = start_token

        while True:
            try:
                data = await self.client.fetch_page(
                    place_id,
                    api_key,
                    language,
                    sort_by,
                    next_page_token=next_page_token,
                )
            except ExternalServiceError as exc:
                self.logger.error(
                    "Review page request failed",
                    place_id=place_id,
                    page=pages_fetched + 1,
                    error=exc.message,
                )
                self._record_page("request_failed")
                break

            if data.get("error"):
                self.logger.error(
                    "Review search reported an error",
                    place_id=place_id,
                    page=pages_fetched + 1,
                    error=data["error"],
                )
                self._record_page("upstream_error")
                break

            page_reviews = data.get("reviews")
            if isinstance(page_reviews, list):
                reviews.extend(
                    tag_review(review, place_id)
                    for review in page_reviews
                    if isinstance(review, dict)
                )

            pagination = data.get("serpapi_pagination")
            next_page_token = pagination.get("next_page_token") if isinstance(pagination, dict) else None
            pages_fetched += 1
            self._record_page("ok")

            if not (fetch_all and next_page_token and pages_fetched < page_cap):
                break

            await asyncio.sleep(self.page_delay_seconds)

        self.logger.info(
            "Place pagination finished",
            place_id=place_id,
            pages_fetched=pages_fetched,
            reviews=len(reviews),
        )
        return PlaceFetchResult(place_id=place_id, reviews=reviews, pages_fetched=pages_fetched)

    def _record_page(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("upstream_pages_total", outcome=outcome)
