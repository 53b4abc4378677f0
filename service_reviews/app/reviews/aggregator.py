"""
Merge, filter, sort and truncate review sets from several places.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Set, Tuple

from .models import (
    SORT_HIGHEST_RATING,
    SORT_LOWEST_RATING,
    SORT_NEWEST_FIRST,
    AggregateResponse,
    PlaceFetchResult,
    Review,
)


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_rating_filter(rating_filter: Optional[str]) -> Set[int]:
    """Parse a comma-separated rating list.

    Each entry contributes its leading integer, so "4.5" and "4abc" both
    mean 4. Entries without leading digits are skipped.
    """
    allowed: Set[int] = set()
    if not rating_filter:
        return allowed
    for part in rating_filter.split(","):
        match = _LEADING_INT.match(part)
        if match:
            allowed.add(int(match.group(1)))
    return allowed


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse ISO timestamp strings safely."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _recency_key(review: Review) -> Tuple[int, float]:
    # Edited reviews rank by their edit time; unparseable dates rank last
    moment = _parse_timestamp(review.get("iso_date_of_last_edit") or review.get("iso_date"))
    if moment is None:
        return (0, 0.0)
    return (1, moment.timestamp())


def _rating_key(review: Review) -> float:
    try:
        return float(review.get("rating"))
    except (TypeError, ValueError):
        return 0.0


def _rating_allowed(review: Review, allowed: Set[int]) -> bool:
    rating = review.get("rating")
    return isinstance(rating, (int, float)) and rating in allowed


def _has_text(review: Review) -> bool:
    snippet = review.get("snippet")
    return isinstance(snippet, str) and bool(snippet.strip())


def sort_reviews(reviews: List[Review], sort_by: str) -> List[Review]:
    """Order reviews globally; unknown modes keep the merged order."""
    if sort_by == SORT_NEWEST_FIRST:
        return sorted(reviews, key=_recency_key, reverse=True)
    if sort_by == SORT_HIGHEST_RATING:
        return sorted(reviews, key=_rating_key, reverse=True)
    if sort_by == SORT_LOWEST_RATING:
        return sorted(reviews, key=_rating_key)
    return list(reviews)


def aggregate(
    results: Iterable[PlaceFetchResult],
    rating_filter: Optional[str] = None,
    only_with_reviews: bool = False,
    sort_by: str = SORT_NEWEST_FIRST,
    limit: Optional[int] = None,
) -> AggregateResponse:
    """
    Combine per-place results into a single response.

    Filtering happens before sorting and ``total_count`` is taken before the
    limit is applied, so it reflects every review that matched.
    """
    reviews: List[Review] = []
    pages_fetched = 0
    for result in results:
        reviews.extend(result.reviews)
        pages_fetched += result.pages_fetched

    allowed_ratings = parse_rating_filter(rating_filter)
    if allowed_ratings:
        reviews = [review for review in reviews if _rating_allowed(review, allowed_ratings)]

    if only_with_reviews:
        reviews = [review for review in reviews if _has_text(review)]

    reviews = sort_reviews(reviews, sort_by)
    total_count = len(reviews)

    if limit is not None and limit > 0:
        reviews = reviews[:limit]

    return AggregateResponse(
        total_count=total_count,
        returned_count=len(reviews),
        pages_fetched=pages_fetched,
        reviews=reviews,
    )
