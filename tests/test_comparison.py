from __future__ import annotations

import math

import pytest

from weathercore.entities import Location
from weathercore.registry import ProviderRegistry
from weathercore.services.comparison import (
    AggregateFailure,
    ComparisonService,
    ValidationError,
    persist_comparison,
    validate_coordinates,
)

from tests.fakes import FakeAdapter, failing, timing_out


@pytest.mark.parametrize(
    ("latitude", "longitude"),
    [("abc", "1"), (91, 0), (-90.5, 0), (0, 180.1), (math.nan, 0), (True, 0), (None, 0)],
)
def test_invalid_coordinates_are_rejected(latitude, longitude):
    with pytest.raises(ValidationError):
        validate_coordinates(latitude, longitude)


def test_string_coordinates_are_accepted():
    assert validate_coordinates("40.7128", "-74.006") == (40.7128, -74.006)
    assert validate_coordinates(-90, 180) == (-90.0, 180.0)


def test_validation_happens_before_fan_out():
    adapter = FakeAdapter("noaa")

    with pytest.raises(ValidationError):
        ComparisonService(ProviderRegistry([adapter])).compare(120, 0)
    assert adapter.calls == []


def test_partial_success_keeps_failures():
    registry = ProviderRegistry([FakeAdapter("noaa"), timing_out("openweather"), FakeAdapter("weatherapi")])

    comparison = ComparisonService(registry).compare("40.7128", "-74.006")

    assert [report.provider_id for report in comparison.reports] == ["noaa", "weatherapi"]
    assert [failure.provider_id for failure in comparison.failures] == ["openweather"]
    assert comparison.configured == ["noaa", "openweather", "weatherapi"]
    payload = comparison.to_payload()
    assert payload["location"]["city"] == "New York"
    assert [service["service"] for service in payload["services"]] == ["noaa", "weatherapi"]
    assert payload["timestamp"].endswith("Z")


def test_all_failures_raise_aggregate_failure():
    registry = ProviderRegistry([failing("noaa", "NOAA API error: 503"), timing_out("weatherapi")])

    with pytest.raises(AggregateFailure) as excinfo:
        ComparisonService(registry).compare(40.7, -74.0)

    assert str(excinfo.value) == "All weather services failed"
    assert {failure.provider_id for failure in excinfo.value.failures} == {"noaa", "weatherapi"}


def test_no_configured_providers_is_an_aggregate_failure():
    registry = ProviderRegistry([FakeAdapter("openweather", configured=False)])

    with pytest.raises(AggregateFailure) as excinfo:
        ComparisonService(registry).compare(40.7, -74.0)
    assert excinfo.value.failures == []


def test_persist_comparison_stores_forecasts_and_observer_reading(store):
    location_id = store.insert_location(Location(latitude=40.7128, longitude=-74.006), "s").id
    comparison = ComparisonService(ProviderRegistry([FakeAdapter("noaa"), FakeAdapter("openweather")])).compare(
        40.7128, -74.006
    )

    counts = persist_comparison(store, location_id, comparison)

    assert counts == {"forecasts": 6, "observations": 1}
    assert {row.provider_id for row in store.list_forecasts_by_location(location_id)} == {"noaa", "openweather"}
    assert len(store.list_observations_by_location(location_id)) == 1


def test_persist_comparison_without_observer(store):
    location_id = store.insert_location(Location(latitude=40.7128, longitude=-74.006), "s").id
    comparison = ComparisonService(ProviderRegistry([FakeAdapter("openweather")])).compare(40.7128, -74.006)

    assert persist_comparison(store, location_id, comparison) == {"forecasts": 3, "observations": 0}
    assert persist_comparison(store, location_id, comparison, observer_id=None)["observations"] == 0
