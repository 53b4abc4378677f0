"""
Tests for the review aggregation HTTP surface.
"""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from service_reviews.app.main import create_app
from service_reviews.app.reviews.models import EMPTY_RESULT_WARNING


@pytest.fixture
def client():
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def service(client):
    service = client.app.state.reviews_service
    service.review_cache.get = AsyncMock(return_value=None)
    service.review_cache.put = AsyncMock(return_value=True)
    service.paginator.page_delay_seconds = 0
    return service


def _serve_pages(service, pages_by_place):
    async def fake_fetch_page(place_id, api_key, language, sort_by, next_page_token=None):
        return pages_by_place[place_id]

    service.search_client.fetch_page = AsyncMock(side_effect=fake_fetch_page)


def _assert_cors(response):
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Methods"] == "GET, HEAD, POST, OPTIONS"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"


def test_options_preflight_is_empty_200(client):
    response = client.options("/")

    assert response.status_code == 200
    assert response.content == b""
    _assert_cors(response)


def test_missing_api_key_is_rejected_before_upstream(client, service):
    service.search_client.fetch_page = AsyncMock()

    response = client.get("/?place_id=A")

    assert response.status_code == 400
    assert response.json() == {"error": "Missing api_key"}
    _assert_cors(response)
    service.search_client.fetch_page.assert_not_awaited()


def test_missing_place_id_is_rejected(client, service):
    response = client.get("/?api_key=key")

    assert response.status_code == 400
    assert response.json() == {"error": "Missing place_id"}


def test_two_place_aggregation(client, service):
    _serve_pages(service, {
        "A": {"reviews": [
            {"rating": 5, "snippet": "Excellent", "iso_date": "2024-01-02T00:00:00Z"},
            {"rating": 3, "snippet": "", "iso_date": "2024-01-03T00:00:00Z"},
        ]},
        "B": {"reviews": [
            {"rating": 4, "snippet": "Good", "iso_date": "2024-01-01T00:00:00Z"},
        ]},
    })

    response = client.get(
        "/?api_key=key&place_id=A,B&only_with_reviews=true&sort_by=highestRating&limit=2"
    )

    assert response.status_code == 200
    _assert_cors(response)
    assert response.headers["X-Cache"] == "MISS"
    body = response.json()
    assert body["total_count"] == 2
    assert body["returned_count"] == 2
    assert body["pages_fetched"] == 2
    assert [(r["rating"], r["source_place_id"]) for r in body["reviews"]] == [(5, "A"), (4, "B")]


def test_failing_place_does_not_affect_others(client, service):
    _serve_pages(service, {
        "A": {"error": "Invalid place id"},
        "B": {"reviews": [
            {"rating": 5, "snippet": "a", "iso_date": "2024-01-01T00:00:00Z"},
            {"rating": 4, "snippet": "b", "iso_date": "2024-01-02T00:00:00Z"},
            {"rating": 3, "snippet": "c", "iso_date": "2024-01-03T00:00:00Z"},
        ]},
    })

    response = client.get("/?api_key=key&place_id=A,B")

    assert response.status_code == 200
    body = response.json()
    assert body["total_count"] == 3
    assert body["pages_fetched"] == 1
    assert {review["source_place_id"] for review in body["reviews"]} == {"B"}


def test_empty_result_falls_back_to_cached_body(client, service):
    _serve_pages(service, {"A": {"reviews": []}})
    cached_body = json.dumps({
        "total_count": 1,
        "returned_count": 1,
        "pages_fetched": 1,
        "reviews": [{"rating": 5, "source_place_id": "A"}],
    })
    service.review_cache.get = AsyncMock(return_value=cached_body)

    response = client.get("/?api_key=key&place_id=A")

    assert response.status_code == 200
    assert response.text == cached_body
    assert response.headers["X-Cache"] == "HIT"
    _assert_cors(response)
    service.review_cache.put.assert_not_awaited()


def test_empty_result_without_cache_returns_warning(client, service):
    _serve_pages(service, {"A": {"error": "Google hasn't returned any results for this query."}})

    response = client.get("/?api_key=key&place_id=A")

    assert response.status_code == 200
    assert "X-Cache" not in response.headers
    assert response.json() == {
        "total_count": 0,
        "returned_count": 0,
        "pages_fetched": 0,
        "reviews": [],
        "warning": EMPTY_RESULT_WARNING,
    }


def test_internal_error_without_cache_is_500(client, service):
    service.orchestrator.fetch_all = AsyncMock(side_effect=RuntimeError("boom"))

    response = client.get("/?api_key=key&place_id=A")

    assert response.status_code == 500
    assert response.json() == {"error": "boom"}
    _assert_cors(response)


def test_internal_error_with_cache_is_served(client, service):
    service.orchestrator.fetch_all = AsyncMock(side_effect=RuntimeError("boom"))
    service.review_cache.get = AsyncMock(return_value='{"total_count": 4}')

    response = client.get("/?api_key=key&place_id=A")

    assert response.status_code == 200
    assert response.text == '{"total_count": 4}'


def test_parameter_order_maps_to_same_cache_key(client, service):
    _serve_pages(service, {"A": {"reviews": []}})

    client.get("/?api_key=key&place_id=A&sort_by=highestRating&hl=en")
    client.get("/?hl=en&sort_by=highestRating&place_id=A&api_key=key")
    client.get("/?hl=de&sort_by=highestRating&place_id=A&api_key=key")

    keys = [c.args[0] for c in service.review_cache.get.await_args_list]
    assert keys[0] == keys[1]
    assert keys[0] != keys[2]


def test_fetch_all_respects_page_cap(client, service):
    service.search_client.fetch_page = AsyncMock(return_value={
        "reviews": [{"rating": 5, "snippet": "x", "iso_date": "2024-01-01T00:00:00Z"}],
        "serpapi_pagination": {"next_page_token": "again"},
    })

    response = client.get("/?api_key=key&place_id=A&fetch_all=true")

    assert response.status_code == 200
    assert service.search_client.fetch_page.await_count == 20
    assert response.json()["pages_fetched"] == 20


def test_next_page_token_applied_to_every_place(client, service):
    service.search_client.fetch_page = AsyncMock(return_value={"reviews": []})

    client.get("/?api_key=key&place_id=A,B&next_page_token=tok")

    tokens = {c.args[0]: c.kwargs["next_page_token"] for c in service.search_client.fetch_page.await_args_list}
    assert tokens == {"A": "tok", "B": "tok"}


@pytest.mark.parametrize("method", ["head", "post", "put", "patch", "delete"])
def test_endpoint_accepts_other_methods(client, service, method):
    _serve_pages(service, {"A": {"reviews": [{"rating": 4, "snippet": "ok", "iso_date": "2024-01-01T00:00:00Z"}]}})

    response = getattr(client, method)("/?api_key=key&place_id=A")

    assert response.status_code == 200
    _assert_cors(response)


@pytest.mark.parametrize("method", ["put", "patch", "delete"])
def test_validation_errors_are_json_for_any_method(client, service, method):
    response = getattr(client, method)("/?place_id=A")

    assert response.status_code == 400
    assert response.json() == {"error": "Missing api_key"}
    _assert_cors(response)


def test_request_id_is_echoed(client, service):
    _serve_pages(service, {"A": {"reviews": []}})

    response = client.get("/?api_key=key&place_id=A", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


def test_health_reports_redis(client, service):
    service.review_cache.ping = AsyncMock(return_value=True)

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["service"] == "reviews"
    assert body["dependencies"] == {"redis": "ok"}


def test_metrics_endpoint(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
