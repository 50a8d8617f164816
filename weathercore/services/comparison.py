from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..entities import Location, ProviderFailure, ProviderSuccess, WeatherReport, format_timestamp
from ..registry import ProviderRegistry
from ..storage import WeatherStore


logger = logging.getLogger(__name__)


class WeatherServiceError(RuntimeError):
    """Base error for the comparison service."""


class ValidationError(WeatherServiceError, ValueError):
    """Raised when caller supplied coordinates are malformed or out of range."""


class AggregateFailure(WeatherServiceError):
    """Raised when no eligible provider returned data."""

    def __init__(self, failures: List[ProviderFailure]) -> None:
        super().__init__("All weather services failed")
        self.failures = failures


@dataclass(frozen=True)
class Comparison:
    location: Location
    reports: List[WeatherReport]
    failures: List[ProviderFailure] = field(default_factory=list)
    configured: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def report_for(self, provider_id: str) -> Optional[WeatherReport]:
        for report in self.reports:
            if report.provider_id == provider_id:
                return report
        return None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "location": self.location.to_payload(),
            "services": [report.to_payload() for report in self.reports],
            "timestamp": format_timestamp(self.timestamp),
        }


def _coordinate(value: Any, name: str, limit: float) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be a number") from exc
    if math.isnan(number) or not -limit <= number <= limit:
        raise ValidationError(f"{name} must be between {-limit:g} and {limit:g}")
    return number


def validate_coordinates(latitude: Any, longitude: Any) -> Tuple[float, float]:
    return _coordinate(latitude, "latitude", 90), _coordinate(longitude, "longitude", 180)


class ComparisonService:
    """Fetches every configured provider and shapes the outcome for callers."""

    def __init__(self, registry: ProviderRegistry) -> None:
        self.registry = registry

    def compare(self, latitude: Any, longitude: Any) -> Comparison:
        latitude, longitude = validate_coordinates(latitude, longitude)
        configured = [adapter.provider_id for adapter in self.registry.configured()]
        logger.info("Comparing %s at %.4f,%.4f", ", ".join(configured) or "no providers", latitude, longitude)

        results = self.registry.fetch_all(latitude, longitude, only_configured=True)
        reports = [result.report for result in results if isinstance(result, ProviderSuccess)]
        failures = [result for result in results if isinstance(result, ProviderFailure)]
        for failure in failures:
            logger.error("Weather service %s failed: %s", failure.provider_id, failure.error_message)

        if not reports:
            raise AggregateFailure(failures)

        return Comparison(
            location=reports[0].location,
            reports=reports,
            failures=failures,
            configured=configured,
        )


def persist_comparison(
    store: WeatherStore,
    location_id: int,
    comparison: Comparison,
    observer_id: Optional[str] = "noaa",
) -> Dict[str, int]:
    """Store every forecast point and the observer provider's current reading.

    The observer's current conditions are the ground truth later used by the
    accuracy engine. Pass ``observer_id=None`` to store forecasts only.
    """
    forecasts = 0
    for report in comparison.reports:
        for point in report.forecast:
            store.insert_forecast(location_id, report.provider_id, point)
            forecasts += 1

    observations = 0
    observer = comparison.report_for(observer_id) if observer_id else None
    if observer is not None:
        store.insert_observation(location_id, observer.current)
        observations = 1
    elif observer_id:
        logger.warning("Observer %s returned no data; no observation stored", observer_id)

    return {"forecasts": forecasts, "observations": observations}


__all__ = [
    "AggregateFailure",
    "Comparison",
    "ComparisonService",
    "ValidationError",
    "WeatherServiceError",
    "persist_comparison",
    "validate_coordinates",
]
