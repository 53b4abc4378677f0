"""
Review caching package.

Holds the last good aggregate per normalized request so the service can
answer from it when the upstream returns nothing or fails.
"""

from .review_cache import ReviewCache, make_cache_key

__all__ = ["ReviewCache", "make_cache_key"]
