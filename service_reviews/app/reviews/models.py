"""
Request and result types for review aggregation.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from shared.errors import ValidationError


SORT_NEWEST_FIRST = "newestFirst"
SORT_HIGHEST_RATING = "highestRating"
SORT_LOWEST_RATING = "lowestRating"

DEFAULT_LANGUAGE = "de"
EMPTY_RESULT_WARNING = "No reviews found and no cache available."

_TRUTHY = ("true", "1", "yes")

Review = Dict[str, Any]


def tag_review(review: Mapping[str, Any], place_id: str) -> Review:
    """Return a copy of an upstream review tagged with the place it came from."""
    return {**review, "source_place_id": place_id}


def _is_truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def _parse_limit(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        limit = int(value.strip())
    except ValueError:
        return None
    return limit if limit > 0 else None


class ReviewQuery(BaseModel):
    """Validated view of the aggregation request's query parameters."""

    api_key: str = Field(min_length=1)
    place_ids: List[str] = Field(min_length=1)
    fetch_all: bool = False
    sort_by: str = SORT_NEWEST_FIRST
    hl: str = DEFAULT_LANGUAGE
    rating: Optional[str] = None
    only_with_reviews: bool = False
    limit: Optional[int] = None
    next_page_token: Optional[str] = None

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> "ReviewQuery":
        """
        Build a query from raw string parameters.

        Raises ValidationError when a required parameter is missing. Optional
        parameters with unusable values fall back to their defaults.
        """
        api_key = params.get("api_key")
        if not api_key:
            raise ValidationError("Missing api_key")

        place_ids = [
            place_id.strip()
            for place_id in (params.get("place_id") or "").split(",")
            if place_id.strip()
        ]
        if not place_ids:
            raise ValidationError("Missing place_id")

        return cls(
            api_key=api_key,
            place_ids=place_ids,
            fetch_all=_is_truthy(params.get("fetch_all")),
            sort_by=params.get("sort_by") or SORT_NEWEST_FIRST,
            hl=params.get("hl") or DEFAULT_LANGUAGE,
            rating=params.get("rating") or None,
            only_with_reviews=_is_truthy(params.get("only_with_reviews")),
            limit=_parse_limit(params.get("limit")),
            next_page_token=params.get("next_page_token") or None,
        )


@dataclass
class PlaceFetchResult:
    """Reviews retrieved for a single place identifier."""

    place_id: str
    reviews: List[Review] = field(default_factory=list)
    pages_fetched: int = 0


@dataclass(frozen=True)
class AggregateResponse:
    """Merged review set; the unit that is served and cached."""

    total_count: int
    returned_count: int
    pages_fetched: int
    reviews: List[Review]
    warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        payload: Dict[str, Any] = {
            "total_count": self.total_count,
            "returned_count": self.returned_count,
            "pages_fetched": self.pages_fetched,
            "reviews": self.reviews,
        }
        if self.warning is not None:
            payload["warning"] = self.warning
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def empty(cls, warning: str = EMPTY_RESULT_WARNING) -> "AggregateResponse":
        return cls(total_count=0, returned_count=0, pages_fetched=0, reviews=[], warning=warning)
