from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from driver_analytics.api import create_app
from driver_analytics.config import Settings
from driver_analytics.errors import DatabaseConnectionError, QueryError
from driver_analytics.service import AnalyticsService
from driver_analytics.strategies import NaiveAggregation, StoreSideAggregation

URL = "/api/v1/drivers/{}/analytics"


def _client(gateway, variant: str = "optimized", **settings_overrides) -> TestClient:
    settings = Settings(_env_file=None, **settings_overrides)
    paginate = variant == "optimized"
    service = AnalyticsService(
        gateway=gateway,
        aggregation=StoreSideAggregation() if paginate else NaiveAggregation(),
        paginate=paginate,
        name=variant,
        default_limit=settings.default_page_limit,
    )
    return TestClient(create_app(variant, settings=settings, service=service), raise_server_exceptions=False)


@pytest.fixture
def optimized(store_gateway) -> TestClient:
    return _client(store_gateway, "optimized")


@pytest.fixture
def unoptimized(store_gateway) -> TestClient:
    return _client(store_gateway, "unoptimized")


def test_health_reports_variant(optimized, unoptimized) -> None:
    assert optimized.get("/health").json() == {"status": "ok", "variant": "optimized"}
    assert unoptimized.get("/health").json() == {"status": "ok", "variant": "unoptimized"}


def test_optimized_response_shape(optimized) -> None:
    response = optimized.get(URL.format(1), params={"limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["driver"]["driver_id"] == 1
    assert body["totalTrips"] == 5
    assert body["totalEarnings"] == 69.08
    assert body["averageRating"] == 4.0
    assert [t["trip_id"] for t in body["trips"]] == [105, 102]
    assert body["trips"][1]["rating"] is None
    assert body["pagination"] == {
        "limit": 2,
        "hasNextPage": True,
        "totalTrips": 5,
        "showingTrips": 2,
        "nextCursor": {"cursor_date": "2024-03-01", "cursor_id": 102},
    }
    assert "success" not in body


def test_optimized_cursor_round_trip(optimized) -> None:
    first = optimized.get(URL.format(1), params={"limit": 3}).json()
    cursor = first["pagination"]["nextCursor"]

    second = optimized.get(URL.format(1), params={"limit": 3, **cursor}).json()

    assert [t["trip_id"] for t in first["trips"] + second["trips"]] == [105, 102, 101, 103, 104]
    assert second["pagination"]["hasNextPage"] is False
    assert second["pagination"]["nextCursor"] is None


def test_optimized_non_numeric_limit_falls_back_to_default(optimized) -> None:
    body = optimized.get(URL.format(3), params={"limit": "lots"}).json()

    assert body["pagination"]["limit"] == 100
    assert len(body["trips"]) == 25


def test_optimized_limit_is_clamped(store_gateway) -> None:
    client = _client(store_gateway, "optimized", max_page_limit=10)

    body = client.get(URL.format(3), params={"limit": 5000}).json()

    assert body["pagination"]["limit"] == 10
    assert body["pagination"]["showingTrips"] == 10


def test_optimized_compresses_large_responses(optimized) -> None:
    response = optimized.get(URL.format(3), headers={"Accept-Encoding": "gzip"})

    assert response.status_code == 200
    assert response.headers.get("content-encoding") == "gzip"


def test_unoptimized_response_shape(unoptimized) -> None:
    response = unoptimized.get(URL.format(1))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["totalTrips"] == 5
    assert len(body["trips"]) == 5
    assert "pagination" not in body
    assert body["trips"][3]["payment"] is None
    assert body["trips"][4]["payment"] == {"amount": 0.0, "payment_date": "2024-01-10"}


def test_unoptimized_ignores_pagination_parameters(unoptimized) -> None:
    response = unoptimized.get(URL.format(3), params={"limit": "-1", "cursor_date": "bogus"})

    assert response.status_code == 200
    assert len(response.json()["trips"]) == 25


def test_driver_without_trips_is_not_an_error(optimized, unoptimized) -> None:
    for client in (optimized, unoptimized):
        response = client.get(URL.format(2))
        assert response.status_code == 200
        assert response.json()["totalTrips"] == 0
        assert response.json()["trips"] == []


@pytest.mark.parametrize("driver_id", [999999999, 0, -1])
def test_unknown_driver_is_404(optimized, unoptimized, driver_id) -> None:
    for client in (optimized, unoptimized):
        response = client.get(URL.format(driver_id))
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Driver not found"}


@pytest.mark.parametrize(
    "params",
    [
        {"limit": "-1"},
        {"limit": "inf"},
        {"cursor_date": "2024-03-01"},
        {"cursor_id": "5"},
        {"cursor_date": "yesterday", "cursor_id": "5"},
        {"cursor_date": "2024-03-01", "cursor_id": "abc"},
    ],
)
def test_optimized_rejects_invalid_parameters(optimized, params) -> None:
    response = optimized.get(URL.format(1), params=params)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"]


def test_non_integer_driver_id_is_400(optimized) -> None:
    response = optimized.get(URL.format("abc"))

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid request parameter: driver_id"}


def test_query_error_maps_to_500(make_gateway) -> None:
    client = _client(make_gateway(lambda q, p: QueryError("relation \"trips\" does not exist")))

    response = client.get(URL.format(1))

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "Internal server error",
        "error": "Database error",
    }


def test_connection_error_maps_to_500(make_gateway) -> None:
    client = _client(make_gateway(lambda q, p: DatabaseConnectionError("refused")), "unoptimized")

    response = client.get(URL.format(1))

    assert response.status_code == 500
    assert response.json()["error"] == "Database unavailable"


def test_unexpected_error_maps_to_500(make_gateway) -> None:
    client = _client(make_gateway(lambda q, p: RuntimeError("boom")))

    response = client.get(URL.format(1))

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}


def test_lifespan_leaves_injected_service_open(store_gateway) -> None:
    with _client(store_gateway) as client:
        assert client.get(URL.format(1)).status_code == 200

    assert store_gateway.closed is False
