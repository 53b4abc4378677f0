"""
Review Aggregation Service package.

The service fronts the upstream review-search API, enforcing:
- Bounded pagination: page cap and politeness delay per place
- Fan-out: all requested places fetched concurrently
- Aggregation: merge, filter, global sort and truncation
- Resilience: cache-aside writes and last-good cache fallback

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.adapters: HTTP client for the upstream review search.
- app.caching: Redis-backed aggregate cache.
- app.reviews: Pagination, orchestration, aggregation, cache-aside control.
"""
