"""
Adapters package for the Review Aggregation Service.

Contains HTTP client wrappers for external dependencies. These adapters
encapsulate:

- Base URLs and request shapes
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .review_search_client import ReviewSearchClient

__all__ = [
    "ReviewSearchClient",
]
