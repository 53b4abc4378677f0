"""
Concurrent fan-out of place pagination.
"""

from __future__ import annotations

import asyncio
from typing import List, Sequence

from shared.logging import get_logger

from .models import PlaceFetchResult, ReviewQuery
from .paginator import ReviewPaginator


class FetchOrchestrator:
    """Runs the paginator for every requested place at once."""

    def __init__(self, paginator: ReviewPaginator) -> None:
        self.paginator = paginator
        self.logger = get_logger("reviews.orchestrator")

    async def fetch_all(self, place_ids: Sequence[str], query: ReviewQuery) -> List[PlaceFetchResult]:
        """
        Fetch reviews for all places concurrently.

        Returns one result per place identifier in input order. A place whose
        pagination fails contributes an empty result instead of aborting the
        others.
        """
        outcomes = await asyncio.gather(
            *[
                self.paginator.paginate(
                    place_id,
                    query.api_key,
                    query.hl,
                    query.sort_by,
                    start_token=query.next_page_token,
                    fetch_all=query.fetch_all,
                )
                for place_id in place_ids
            ],
            return_exceptions=True,
        )

        results: List[PlaceFetchResult] = []
        for place_id, outcome in zip(place_ids, outcomes):
            if isinstance(outcome, Exception):
                self.logger.error(
                    "Place fetch failed",
                    place_id=place_id,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                results.append(PlaceFetchResult(place_id=place_id))
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        return results
