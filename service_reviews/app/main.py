"""
Review Aggregation service.
"""

from typing import Dict

from fastapi import Request, Response

from shared.base_service import BaseService
from service_reviews.app.adapters.review_search_client import ReviewSearchClient
from service_reviews.app.caching.review_cache import ReviewCache, make_cache_key
from service_reviews.app.reviews.controller import ReviewAggregationController
from service_reviews.app.reviews.models import ReviewQuery
from service_reviews.app.reviews.orchestrator import FetchOrchestrator
from service_reviews.app.reviews.paginator import ReviewPaginator


# Every method but OPTIONS, which the base middleware answers.
ACCEPTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"]


class ReviewsService(BaseService):
    """Review aggregation service implementation."""

    def __init__(self):
        super().__init__("reviews", 8000)
        self.search_client = ReviewSearchClient(
            self.config.serpapi_url,
            engine=self.config.serpapi_engine,
            timeout=self.config.upstream_timeout_seconds,
            metrics=self.metrics,
        )
        self.paginator = ReviewPaginator(
            self.search_client,
            max_pages=self.config.max_pages,
            page_delay_seconds=self.config.page_delay_seconds,
            metrics=self.metrics,
        )
        self.orchestrator = FetchOrchestrator(self.paginator)
        self.review_cache = ReviewCache(
            self.config.redis_url,
            ttl_seconds=self.config.cache_ttl_seconds,
        )
        self.controller = ReviewAggregationController(
            self.orchestrator,
            self.review_cache,
            metrics=self.metrics,
        )

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.controller.drain()
            await self.search_client.close()
            await self.review_cache.close()

        self._setup_review_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.reviews_service = self

    async def _check_dependencies(self) -> Dict[str, str]:
        """Report cache store reachability."""
        return {"redis": "ok" if await self.review_cache.ping() else "error"}

    def _setup_review_routes(self):
        """Set up the aggregation endpoint."""

        @self.app.api_route("/", methods=ACCEPTED_METHODS)
        async def aggregate_reviews(request: Request):
            """Aggregate reviews for the requested places, falling back to cache."""
            params = request.query_params
            query = ReviewQuery.from_query_params(params)
            cache_key = make_cache_key(params.multi_items())

            self.logger.info(
                "Aggregating reviews",
                places=len(query.place_ids),
                fetch_all=query.fetch_all,
                sort_by=query.sort_by,
                key=cache_key,
            )

            outcome = await self.controller.handle(query, cache_key)
            return Response(
                content=outcome.body,
                status_code=outcome.status_code,
                media_type="application/json",
                headers=outcome.headers,
            )


def create_app():
    """Create FastAPI application."""
    service = ReviewsService()
    return service.app


if __name__ == "__main__":
    service = ReviewsService()
    service.run()
