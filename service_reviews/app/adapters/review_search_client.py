"""
Async client for the upstream review search API.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx

from shared.errors import ExternalServiceError
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_SEARCH_URL = "https://serpapi.com/search.json"
DEFAULT_ENGINE = "google_maps_reviews"


class ReviewSearchClient:
    """Fetches single review pages from the upstream search endpoint."""

    def __init__(
        self,
        search_url: str = DEFAULT_SEARCH_URL,
        *,
        engine: str = DEFAULT_ENGINE,
        timeout: float = 30.0,
        metrics: Optional["MetricsCollector"] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.search_url = search_url
        self.engine = engine
        self.metrics = metrics
        self.logger = get_logger("reviews.search_client")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def fetch_page(
        self,
        place_id: str,
        api_key: str,
        language: str,
        sort_by: str,
        next_page_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Request one page of reviews for a place.

        Returns the decoded JSON document as-is, including an upstream
        ``error`` field when the API reports one. Transport failures and
        undecodable responses raise ExternalServiceError.
        """
        params = {
            "engine": self.engine,
            "place_id": place_id,
            "api_key": api_key,
            "hl": language,
            "sort_by": sort_by,
        }
        if next_page_token:
            params["next_page_token"] = next_page_token

        start = time.perf_counter()
        try:
            response = await self._client.get(self.search_url, params=params)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(
                service="review_search",
                message=str(exc) or type(exc).__name__,
                details={"place_id": place_id},
            ) from exc
        finally:
            if self.metrics:
                self.metrics.observe_histogram(
                    "upstream_request_duration_seconds", time.perf_counter() - start
                )

        try:
            data = response.json()
        except ValueError as exc:
            raise ExternalServiceError(
                service="review_search",
                message=f"Non-JSON response with status {response.status_code}",
                details={"place_id": place_id, "status_code": response.status_code},
            ) from exc

        if not isinstance(data, dict):
            raise ExternalServiceError(
                service="review_search",
                message="Unexpected response document",
                details={"place_id": place_id, "status_code": response.status_code},
            )

        # Error bodies carry an "error" field the caller handles itself
        if response.status_code != 200 and not data.get("error"):
            raise ExternalServiceError(
                service="review_search",
                message=f"Unexpected status {response.status_code}",
                details={"place_id": place_id, "status_code": response.status_code},
            )

        self.logger.debug(
            "Review page retrieved",
            place_id=place_id,
            status_code=response.status_code,
            has_next_page_token=bool(next_page_token),
        )
        return data
