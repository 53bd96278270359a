"""Tests for the frontend endpoints."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from weatherfetch import api, main
from weatherfetch.cache import ForecastCache
from weatherfetch.providers import HttpForecastProvider, LocalForecastProvider
from weatherfetch.retry import FetchStats, RetryOrchestrator
from weatherfetch.service import ForecastService

from conftest import RecordingProvider, ScriptedRandom, no_sleep


@pytest.fixture
def provider():
    return RecordingProvider(LocalForecastProvider(ScriptedRandom()))


@pytest.fixture
def fetch_stats(monkeypatch):
    stats = FetchStats()
    monkeypatch.setattr(main, "fetch_stats", stats)
    return stats


@pytest.fixture
def service(provider, store, fetch_stats):
    return ForecastService(
        ForecastCache(store), RetryOrchestrator(provider, sleep=no_sleep, observers=[fetch_stats])
    )


@pytest.fixture
def frontend_client(service):
    api.app.dependency_overrides[api.get_provider] = lambda: LocalForecastProvider(ScriptedRandom())
    main.app.dependency_overrides[main.get_service] = lambda: service
    main.app.dependency_overrides[main.get_provider] = lambda: HttpForecastProvider(
        "http://weather-api", transport=httpx.ASGITransport(app=api.app)
    )
    with TestClient(main.app) as client:
        yield client
    main.app.dependency_overrides.clear()
    api.app.dependency_overrides.clear()


class TestForecastPage:
    def test_miss_then_hit(self, frontend_client, provider):
        first = frontend_client.get("/", params={"city": "seattle"})
        second = frontend_client.get("/", params={"city": "seattle"})

        assert first.status_code == 200
        assert first.json()["source"] == "api"
        assert second.json()["source"] == "cache"
        assert first.json()["forecasts"] == second.json()["forecasts"]
        assert first.json()["error"] is None
        assert provider.calls == [("seattle", 1)]

    def test_default_city(self, frontend_client, provider):
        body = frontend_client.get("/").json()
        assert body["city"] == "Seattle"
        assert provider.calls == [("Seattle", 1)]

    def test_empty_city_means_seattle(self, frontend_client, provider, store):
        body = frontend_client.get("/", params={"city": ""}).json()

        assert body["city"] == "Seattle"
        assert provider.calls == [("Seattle", 1)]
        assert asyncio.run(store.get("forecasts:Seattle")) is not None
        assert asyncio.run(store.get("forecasts:")) is None

    def test_exhaustion_renders_generic_error(self, frontend_client, provider, service):
        response = frontend_client.get("/", params={"city": "Boston"})

        assert response.status_code == 502
        assert response.json() == {
            "city": "Boston",
            "source": "api",
            "forecasts": [],
            "error": "Failed to fetch weather data for Boston. Please try again later.",
        }
        assert len(provider.calls) == 3

        # failures are not cached: a second request retries from scratch
        frontend_client.get("/", params={"city": "Boston"})
        assert len(provider.calls) == 6


class TestCacheStats:
    def test_snapshot(self, frontend_client):
        frontend_client.get("/", params={"city": "Miami"})
        frontend_client.get("/", params={"city": "Miami"})

        stats = frontend_client.get("/cache-stats").json()
        assert stats == {"hits": 1, "misses": 1, "errors": 0, "total": 2, "hitRate": "50.00%"}


class TestFetchStats:
    def test_attempt_outcomes_are_tallied(self, frontend_client):
        frontend_client.get("/", params={"city": "Miami"})
        frontend_client.get("/", params={"city": "Boston"})

        assert frontend_client.get("/fetch-stats").json() == {
            "Miami": {"successes": 1, "failures": 0, "retried_successes": 0},
            "Boston": {"successes": 0, "failures": 3, "retried_successes": 0},
        }

    def test_cache_hits_do_not_count_as_fetches(self, frontend_client, fetch_stats):
        frontend_client.get("/", params={"city": "Chicago"})
        frontend_client.get("/", params={"city": "Chicago"})

        assert fetch_stats.snapshot()["Chicago"]["successes"] == 1


class TestHealth:
    def test_alive(self, frontend_client):
        assert frontend_client.get("/alive").text == "Healthy"

    def test_healthy_when_api_is(self, frontend_client):
        response = frontend_client.get("/health")
        assert response.status_code == 200
        assert response.text == "Healthy"

    def test_unhealthy_when_api_is_down(self, frontend_client):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        main.app.dependency_overrides[main.get_provider] = lambda: HttpForecastProvider(
            "http://weather-api", transport=httpx.MockTransport(handler)
        )
        response = frontend_client.get("/health")
        assert response.status_code == 503
        assert response.text == "Unhealthy"
