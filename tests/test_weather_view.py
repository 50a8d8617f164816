from __future__ import annotations

from datetime import timedelta

import pytest
from rest_framework.test import APIClient

from weathercore.entities import Location
from weathercore.registry import ProviderRegistry
from weathercore.storage import StorageError
from weatherhub.api import dependencies
from weatherhub.api.views import WeatherCompareView

from tests.fakes import BASE_TIME, FakeAdapter, failing, timing_out


@pytest.fixture
def client() -> APIClient:
    return APIClient()


@pytest.fixture
def registry(monkeypatch, health) -> ProviderRegistry:
    registry = ProviderRegistry(
        [FakeAdapter("noaa"), timing_out("openweather"), FakeAdapter("weatherapi")], health=health
    )
    monkeypatch.setattr(dependencies, "get_provider_registry", lambda: registry)
    monkeypatch.setattr(dependencies, "get_health_registry", lambda: health)
    return registry


@pytest.fixture(autouse=True)
def _store(monkeypatch, store):
    monkeypatch.setattr(dependencies, "get_weather_store", lambda: store)


def _location_id(store) -> int:
    return store.insert_location(Location(latitude=40.7128, longitude=-74.006), "session_view").id


def test_compare_returns_services_and_debug(client, registry) -> None:
    response = client.get("/api/weather/compare", {"lat": "40.7128", "lon": "-74.006"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert [service["service"] for service in payload["comparison"]["services"]] == ["noaa", "weatherapi"]
    assert payload["comparison"]["services"][0]["current"]["windSpeed"] == 10.0
    assert payload["debug"]["configuredServices"] == ["noaa", "openweather", "weatherapi"]
    assert payload["debug"]["errors"][0]["service"] == "openweather"


def test_compare_validates_params(client, registry) -> None:
    missing = client.get("/api/weather/compare", {"lat": "40.7"})
    invalid = client.get("/api/weather/compare", {"lat": "abc", "lon": "37.61"})
    out_of_range = client.get("/api/weather/compare", {"lat": "95", "lon": "37.61"})

    assert missing.status_code == 400
    assert missing.json()["error"] == "Latitude and longitude are required"
    assert invalid.status_code == 400
    assert out_of_range.status_code == 400
    assert out_of_range.json()["success"] is False


def test_compare_total_failure_is_bad_gateway(client, monkeypatch) -> None:
    registry = ProviderRegistry([failing("noaa"), timing_out("weatherapi")])
    monkeypatch.setattr(dependencies, "get_provider_registry", lambda: registry)

    response = client.get("/api/weather/compare", {"lat": "40.7", "lon": "-74.0"})

    assert response.status_code == 502
    payload = response.json()
    assert payload["error"] == "All weather services failed"
    assert {error["service"] for error in payload["errors"]} == {"noaa", "weatherapi"}


def test_location_is_created_then_reused(client, registry) -> None:
    created = client.post("/api/location", {"latitude": 40.7128, "longitude": -74.006}, format="json")

    assert created.status_code == 201
    location = created.json()["location"]
    assert location["sessionId"].startswith("session_")

    again = client.post(
        "/api/location",
        {"latitude": 40.7128, "longitude": -74.006, "sessionId": location["sessionId"]},
        format="json",
    )
    assert again.status_code == 200
    assert again.json()["location"]["id"] == location["id"]


def test_location_rejects_invalid_body(client, registry) -> None:
    response = client.post("/api/location", {"latitude": 120, "longitude": 0}, format="json")

    assert response.status_code == 400
    assert response.json()["details"][0]["loc"] == ["latitude"]


def test_forecast_ingest(client, registry, store) -> None:
    location_id = _location_id(store)

    response = client.post(
        "/api/weather/forecast",
        {
            "locationId": location_id,
            "serviceName": "noaa",
            "forecastData": {"temperature": 70, "humidity": 50, "pressure": 1013, "windSpeed": 10},
            "forecastTimestamp": BASE_TIME.isoformat(),
        },
        format="json",
    )

    assert response.status_code == 201
    forecast = response.json()["forecast"]
    assert forecast["serviceName"] == "noaa"
    assert forecast["forecastTimestamp"] == "2024-05-01T12:00:00Z"
    assert store.list_forecasts_by_location(location_id)[0].forecast.temperature == 70.0


def test_forecast_ingest_rejects_unknown_service_and_location(client, registry, store) -> None:
    location_id = _location_id(store)
    body = {
        "locationId": location_id,
        "serviceName": "darksky",
        "forecastData": {"temperature": 70},
        "forecastTimestamp": BASE_TIME.isoformat(),
    }

    unknown_service = client.post("/api/weather/forecast", body, format="json")
    unknown_location = client.post(
        "/api/weather/forecast", {**body, "serviceName": "noaa", "locationId": location_id + 100}, format="json"
    )
    bad_timestamp = client.post(
        "/api/weather/forecast", {**body, "serviceName": "noaa", "forecastTimestamp": "yesterday"}, format="json"
    )

    assert unknown_service.status_code == 400
    assert unknown_location.status_code == 400
    assert unknown_location.json()["error"] == "Unknown location"
    assert bad_timestamp.status_code == 400


def test_actual_weather_ingest(client, registry, store) -> None:
    location_id = _location_id(store)

    response = client.post(
        "/api/weather/actual",
        {
            "locationId": location_id,
            "weatherData": {"temperature": 71, "humidity": 52, "pressure": 1012, "windSpeed": 10.2},
            "observedTimestamp": "2024-05-01T12:10:00Z",
        },
        format="json",
    )

    assert response.status_code == 201
    assert response.json()["actualWeather"]["weatherData"]["temperature"] == 71.0


def test_accuracy_endpoint_computes_metrics(client, registry, store) -> None:
    location_id = _location_id(store)
    client.post(
        "/api/weather/forecast",
        {
            "locationId": location_id,
            "serviceName": "noaa",
            "forecastData": {"temperature": 70, "humidity": 50, "pressure": 1013, "windSpeed": 10},
            "forecastTimestamp": BASE_TIME.isoformat(),
        },
        format="json",
    )
    client.post(
        "/api/weather/actual",
        {
            "locationId": location_id,
            "weatherData": {"temperature": 71, "humidity": 52, "pressure": 1012, "windSpeed": 10.2},
            "observedTimestamp": (BASE_TIME + timedelta(minutes=10)).isoformat(),
        },
        format="json",
    )

    first = client.get(f"/api/accuracy/{location_id}")
    second = client.get(f"/api/accuracy/{location_id}")

    assert first.status_code == 200
    metrics = first.json()["metrics"]
    assert len(metrics) == 1
    assert metrics[0]["serviceName"] == "noaa"
    assert metrics[0]["accuracyScore"] == pytest.approx(98.2)
    assert first.json()["summary"][0]["samples"] == 1
    assert len(second.json()["metrics"]) == 1


def test_accuracy_unknown_location(client, registry) -> None:
    response = client.get("/api/accuracy/12345")

    assert response.status_code == 404


def test_storage_failure_is_internal_error(client, registry, monkeypatch, store) -> None:
    def broken(*args, **kwargs):
        raise StorageError("disk I/O error")

    monkeypatch.setattr(store, "insert_location", broken)
    monkeypatch.setattr(store, "find_location_by_coordinates", broken)

    anonymous = client.post("/api/location", {"latitude": 1.0, "longitude": 2.0}, format="json")
    with_session = client.post(
        "/api/location", {"latitude": 1.0, "longitude": 2.0, "sessionId": "session_1"}, format="json"
    )

    for response in (anonymous, with_session):
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to store location"}


def test_out_of_range_epoch_timestamps_are_rejected(client, registry, store) -> None:
    location_id = _location_id(store)

    observed = client.post(
        "/api/weather/actual",
        {"locationId": location_id, "weatherData": {"temperature": 71}, "observedTimestamp": 1e20},
        format="json",
    )
    nested = client.post(
        "/api/weather/forecast",
        {
            "locationId": location_id,
            "serviceName": "noaa",
            "forecastData": {"temperature": 70, "timestamp": 1e20},
            "forecastTimestamp": BASE_TIME.isoformat(),
        },
        format="json",
    )

    assert observed.status_code == 400
    assert observed.json()["error"] == "Invalid request data"
    assert nested.status_code == 400
    assert nested.json()["error"] == "Invalid forecast data"
    assert store.list_observations_by_location(location_id) == []
    assert store.list_forecasts_by_location(location_id) == []


def test_injected_empty_registry_is_used(client, monkeypatch) -> None:
    global_registry = ProviderRegistry([FakeAdapter("noaa")])
    monkeypatch.setattr(dependencies, "get_provider_registry", lambda: global_registry)
    monkeypatch.setattr(WeatherCompareView, "registry", ProviderRegistry())

    response = client.get("/api/weather/compare", {"lat": "40.7", "lon": "-74.0"})

    assert response.status_code == 502
    assert response.json()["errors"] == []
    assert global_registry.get("noaa").calls == []
