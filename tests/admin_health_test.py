from datetime import datetime, timezone

import pytest
from rest_framework.test import APIClient

from weathercore.health import HealthRegistry, ProviderStatus
from weathercore.registry import ProviderRegistry
from weatherhub.api import dependencies

from tests.fakes import FakeAdapter, failing


@pytest.fixture()
def registry() -> HealthRegistry:
    registry = HealthRegistry()
    registry.set_provider_statuses(
        [
            ProviderStatus(provider_id="noaa", display_name="NOAA", configured=True),
            ProviderStatus(provider_id="openweather", display_name="OpenWeatherMap", configured=False),
        ]
    )
    registry.record_provider_success("noaa", datetime(2024, 1, 10, 12, 30, tzinfo=timezone.utc))
    registry.record_provider_error("weatherapi", "WeatherAPI error: Invalid API key")
    registry.record_provider_error("openweather", increment=3)
    return registry


def test_snapshot_contains_statuses_counters_and_successes(registry: HealthRegistry) -> None:
    payload = registry.snapshot()

    assert payload["providers"] == {
        "noaa": {"displayName": "NOAA", "configured": True},
        "openweather": {"displayName": "OpenWeatherMap", "configured": False},
    }
    assert payload["errors"] == {"weatherapi": 1, "openweather": 3}
    assert payload["lastErrors"] == {"weatherapi": "WeatherAPI error: Invalid API key"}
    assert payload["lastSuccess"] == {"noaa": "2024-01-10T12:30:00+00:00"}


def test_provider_errors_can_be_drained(registry: HealthRegistry) -> None:
    drained = registry.drain_provider_errors()
    assert drained == {"weatherapi": 1, "openweather": 3}
    assert registry.snapshot()["errors"] == {}


def test_invalid_increments_are_rejected(registry: HealthRegistry) -> None:
    with pytest.raises(ValueError):
        registry.record_provider_error("noaa", increment=0)
    with pytest.raises(ValueError):
        registry.record_provider_error("")


def test_health_endpoint_returns_expected_payload(monkeypatch) -> None:
    health = HealthRegistry()
    providers = ProviderRegistry(
        [FakeAdapter("noaa"), failing("weatherapi"), FakeAdapter("openweather", configured=False)],
        health=health,
    )
    providers.fetch_all(40.7, -74.0)
    monkeypatch.setattr(dependencies, "get_health_registry", lambda: health)
    monkeypatch.setattr(dependencies, "get_provider_registry", lambda: providers)

    response = APIClient().get("/api/admin/health")

    assert response.status_code == 200
    assert response["Content-Type"] == "application/json"
    payload = response.json()
    assert payload["providers"]["openweather"] == {"displayName": "OPENWEATHER", "configured": False}
    assert payload["errors"] == {"weatherapi": 1}
    assert list(payload["lastSuccess"]) == ["noaa"]


def test_non_get_is_rejected() -> None:
    response = APIClient().post("/api/admin/health", {}, format="json")

    assert response.status_code == 405
    assert "method" in response.json()["detail"].lower()
