"""Forecast accuracy scoring.

A stored forecast is paired with the stored observation closest to it in
time (strictly within one hour). The pair is scored as a weighted average of
per-signal scores, counting only the signals both sides reported:

=============  ======  ==============================
signal         weight  score
=============  ======  ==============================
temperature    0.4     ``max(0, 100 - |dF| * 2)``
humidity       0.2     ``max(0, 100 - |d%|)``
pressure       0.2     ``max(0, 100 - |dhPa| * 2)``
wind speed     0.2     ``max(0, 100 - |dmph| * 5)``
=============  ======  ==============================
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..entities import AccuracyMetric, ProviderAccuracy, StoredForecast, StoredObservation, WeatherObservation
from ..storage import WeatherStore


logger = logging.getLogger(__name__)

ALIGNMENT_WINDOW_MS = 3_600_000

# (attribute, weight, points lost per unit of absolute error)
SIGNALS: Tuple[Tuple[str, float, float], ...] = (
    ("temperature", 0.4, 2.0),
    ("humidity", 0.2, 1.0),
    ("pressure", 0.2, 2.0),
    ("wind_speed", 0.2, 5.0),
)


@dataclass(frozen=True)
class AccuracyScore:
    score: float
    temperature_error: Optional[float] = None
    humidity_error: Optional[float] = None
    pressure_error: Optional[float] = None
    wind_speed_error: Optional[float] = None


@dataclass(frozen=True)
class ProviderSummary:
    provider_id: str
    average_score: float
    samples: int

    def to_payload(self) -> Dict[str, object]:
        return {"serviceName": self.provider_id, "averageScore": self.average_score, "samples": self.samples}


def score_pair(forecast: WeatherObservation, actual: WeatherObservation) -> AccuracyScore:
    score = 0.0
    total_weight = 0.0
    errors: Dict[str, Optional[float]] = {}
    for name, weight, penalty in SIGNALS:
        predicted = getattr(forecast, name)
        observed = getattr(actual, name)
        if predicted is None or observed is None:
            errors[name] = None
            continue
        error = abs(predicted - observed)
        errors[name] = error
        score += max(0.0, 100 - error * penalty) * weight
        total_weight += weight

    final = min(100.0, max(0.0, score / total_weight)) if total_weight > 0 else 0.0
    return AccuracyScore(
        score=final,
        temperature_error=errors["temperature"],
        humidity_error=errors["humidity"],
        pressure_error=errors["pressure"],
        wind_speed_error=errors["wind_speed"],
    )


def closest_observation(
    forecast: StoredForecast,
    observations: Iterable[StoredObservation],
    window_ms: int = ALIGNMENT_WINDOW_MS,
) -> Optional[StoredObservation]:
    closest: Optional[StoredObservation] = None
    best = float("inf")
    for observation in observations:
        diff_ms = abs((observation.observed_timestamp - forecast.forecast_timestamp).total_seconds()) * 1000
        if diff_ms < window_ms and diff_ms < best:
            best = diff_ms
            closest = observation
    return closest


class AccuracyEngine:
    """Computes and stores accuracy metrics for the forecasts of one location."""

    def __init__(self, store: WeatherStore, window_ms: int = ALIGNMENT_WINDOW_MS) -> None:
        self.store = store
        self.window_ms = window_ms

    def calculate(self, location_id: int) -> List[AccuracyMetric]:
        """Score every forecast that has an aligned observation.

        Pairs that already have a metric are skipped, so running this again
        creates nothing new. Returns the metrics created by this call.
        """
        forecasts = self.store.list_forecasts_by_location(location_id)
        observations = self.store.list_observations_by_location(location_id)
        created: List[AccuracyMetric] = []
        for forecast in forecasts:
            actual = closest_observation(forecast, observations, self.window_ms)
            if actual is None:
                continue
            if self.store.find_accuracy_metric(forecast.id, actual.id) is not None:
                continue
            result = score_pair(forecast.forecast, actual.observation)
            created.append(
                self.store.insert_accuracy_metric(
                    AccuracyMetric(
                        forecast_id=forecast.id,
                        observation_id=actual.id,
                        accuracy_score=result.score,
                        temperature_error=result.temperature_error,
                        humidity_error=result.humidity_error,
                        pressure_error=result.pressure_error,
                        wind_speed_error=result.wind_speed_error,
                    )
                )
            )
        logger.info(
            "Location %s: %d forecasts, %d observations, %d new accuracy metrics",
            location_id,
            len(forecasts),
            len(observations),
            len(created),
        )
        return created

    def metrics_for_location(self, location_id: int) -> List[ProviderAccuracy]:
        return self.store.list_accuracy_metrics_by_location(location_id)

    def summarize(self, location_id: int) -> List[ProviderSummary]:
        scores: Dict[str, List[float]] = defaultdict(list)
        for row in self.metrics_for_location(location_id):
            scores[row.provider_id].append(row.metric.accuracy_score)
        return [
            ProviderSummary(provider_id=provider, average_score=sum(values) / len(values), samples=len(values))
            for provider, values in sorted(scores.items())
        ]


__all__ = [
    "ALIGNMENT_WINDOW_MS",
    "AccuracyEngine",
    "AccuracyScore",
    "ProviderSummary",
    "closest_observation",
    "score_pair",
]
