from __future__ import annotations

from datetime import timedelta

import pytest

from weathercore.entities import ForecastPoint, Location
from weathercore.services.accuracy import AccuracyEngine, closest_observation, score_pair

from tests.fakes import BASE_TIME, make_observation


def _forecast(when=BASE_TIME, **kwargs) -> ForecastPoint:
    values = {"temperature": 70.0, "humidity": 50.0, "pressure": 1013.0, "wind_speed": 10.0}
    values.update(kwargs)
    return ForecastPoint(timestamp=when, **values)


@pytest.fixture
def location_id(store) -> int:
    return store.insert_location(Location(latitude=40.7128, longitude=-74.006), "session_test").id


def test_score_pair_example():
    actual = make_observation(temperature=71.0, humidity=52.0, pressure=1012.0, wind_speed=10.2)

    result = score_pair(_forecast(), actual)

    assert result.score == pytest.approx(98.2)
    assert result.temperature_error == pytest.approx(1.0)
    assert result.humidity_error == pytest.approx(2.0)
    assert result.pressure_error == pytest.approx(1.0)
    assert result.wind_speed_error == pytest.approx(0.2)


def test_score_pair_ignores_signals_missing_on_either_side():
    actual = make_observation(temperature=75.0, humidity=None, pressure=None, wind_speed=None)

    result = score_pair(_forecast(), actual)

    assert result.score == pytest.approx(90.0)
    assert result.humidity_error is None


def test_signal_scores_floor_at_zero():
    actual = make_observation(temperature=200.0, humidity=0.0, pressure=900.0, wind_speed=80.0)

    # only humidity keeps any points: 100 - 50
    assert score_pair(_forecast(), actual).score == pytest.approx(10.0)
    assert score_pair(_forecast(temperature=None, humidity=None, pressure=None, wind_speed=None), actual).score == 0.0


def test_closest_observation_within_window(store, location_id):
    forecast = store.insert_forecast(location_id, "noaa", _forecast())
    near = store.insert_observation(location_id, make_observation(when=BASE_TIME + timedelta(minutes=20)))
    store.insert_observation(location_id, make_observation(when=BASE_TIME - timedelta(minutes=40)))

    observations = store.list_observations_by_location(location_id)

    assert closest_observation(forecast, observations).id == near.id


def test_observation_exactly_one_hour_away_is_outside_window(store, location_id):
    forecast = store.insert_forecast(location_id, "noaa", _forecast())
    store.insert_observation(location_id, make_observation(when=BASE_TIME + timedelta(hours=1)))

    assert closest_observation(forecast, store.list_observations_by_location(location_id)) is None


def test_calculate_creates_metric_for_aligned_pair(store, location_id):
    store.insert_forecast(location_id, "noaa", _forecast())
    store.insert_observation(
        location_id,
        make_observation(
            temperature=71.0,
            humidity=52.0,
            pressure=1012.0,
            wind_speed=10.2,
            when=BASE_TIME + timedelta(minutes=10),
        ),
    )
    engine = AccuracyEngine(store)

    created = engine.calculate(location_id)

    assert len(created) == 1
    assert created[0].accuracy_score == pytest.approx(98.2)
    rows = engine.metrics_for_location(location_id)
    assert [row.provider_id for row in rows] == ["noaa"]
    assert rows[0].forecast_timestamp == BASE_TIME


def test_calculate_without_observation_in_window_creates_nothing(store, location_id):
    store.insert_forecast(location_id, "noaa", _forecast())
    store.insert_observation(location_id, make_observation(when=BASE_TIME + timedelta(hours=3)))

    assert AccuracyEngine(store).calculate(location_id) == []
    assert store.list_accuracy_metrics_by_location(location_id) == []


def test_calculate_is_idempotent(store, location_id):
    store.insert_forecast(location_id, "noaa", _forecast())
    store.insert_forecast(location_id, "openweather", _forecast(temperature=72.0))
    store.insert_observation(location_id, make_observation())
    engine = AccuracyEngine(store)

    assert len(engine.calculate(location_id)) == 2
    assert engine.calculate(location_id) == []
    assert len(store.list_accuracy_metrics_by_location(location_id)) == 2


def test_summarize_averages_per_provider(store, location_id):
    store.insert_forecast(location_id, "noaa", _forecast())
    store.insert_forecast(location_id, "openweather", _forecast(temperature=75.0))
    store.insert_observation(location_id, make_observation())
    engine = AccuracyEngine(store)
    engine.calculate(location_id)

    summary = {item.provider_id: item for item in engine.summarize(location_id)}

    assert summary["noaa"].average_score == pytest.approx(100.0)
    assert summary["openweather"].average_score == pytest.approx(96.0)
    assert summary["openweather"].samples == 1
