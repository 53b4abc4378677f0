"""
Review aggregation pipeline for the Review Aggregation Service.
"""

from .aggregator import aggregate
from .controller import AggregationOutcome, ReviewAggregationController
from .models import AggregateResponse, PlaceFetchResult, ReviewQuery
from .orchestrator import FetchOrchestrator
from .paginator import ReviewPaginator

__all__ = [
    "aggregate",
    "AggregateResponse",
    "AggregationOutcome",
    "FetchOrchestrator",
    "PlaceFetchResult",
    "ReviewAggregationController",
    "ReviewPaginator",
    "ReviewQuery",
]
