from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional, Union


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Union[str, datetime, int, float]) -> datetime:
    """Parse ISO strings, datetimes or epoch seconds into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"epoch timestamp out of range: {value!r}") from exc
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    def same_place(self, other: "Location") -> bool:
        return self.latitude == other.latitude and self.longitude == other.longitude

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"latitude": self.latitude, "longitude": self.longitude}
        for key in ("city", "state", "country"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Location":
        return cls(
            latitude=float(payload["latitude"]),
            longitude=float(payload["longitude"]),
            city=payload.get("city"),
            state=payload.get("state"),
            country=payload.get("country"),
        )


@dataclass(frozen=True)
class WeatherObservation:
    """Current conditions in canonical units.

    - temperature in Fahrenheit
    - pressure in hectopascal (hPa)
    - wind speed in miles per hour
    - humidity in percent

    A value the provider did not report is ``None``.
    """

    timestamp: datetime
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    pressure: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    condition: str = "Unknown"
    description: Optional[str] = None
    icon: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "pressure": self.pressure,
            "windSpeed": self.wind_speed,
            "condition": self.condition,
            "timestamp": format_timestamp(self.timestamp),
        }
        if self.wind_direction is not None:
            payload["windDirection"] = self.wind_direction
        if self.description is not None:
            payload["description"] = self.description
        if self.icon is not None:
            payload["icon"] = self.icon
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "WeatherObservation":
        return cls(**_common_fields(payload))


@dataclass(frozen=True)
class ForecastPoint(WeatherObservation):
    forecast_hours: int = 0

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["forecastHours"] = self.forecast_hours
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ForecastPoint":
        return cls(forecast_hours=int(payload.get("forecastHours") or 0), **_common_fields(payload))


def _common_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "timestamp": parse_timestamp(payload["timestamp"]),
        "temperature": _optional_float(payload.get("temperature")),
        "humidity": _optional_float(payload.get("humidity")),
        "pressure": _optional_float(payload.get("pressure")),
        "wind_speed": _optional_float(payload.get("windSpeed")),
        "wind_direction": _optional_float(payload.get("windDirection")),
        "condition": payload.get("condition") or "Unknown",
        "description": payload.get("description"),
        "icon": payload.get("icon"),
    }


@dataclass(frozen=True)
class WeatherReport:
    """Everything one provider returned for a coordinate pair."""

    provider_id: str
    current: WeatherObservation
    location: Location
    forecast: List[ForecastPoint] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "service": self.provider_id,
            "current": self.current.to_payload(),
            "forecast": [point.to_payload() for point in self.forecast],
            "location": self.location.to_payload(),
        }


@dataclass(frozen=True)
class ProviderSuccess:
    report: WeatherReport
    ok: ClassVar[bool] = True

    @property
    def provider_id(self) -> str:
        return self.report.provider_id


@dataclass(frozen=True)
class ProviderFailure:
    provider_id: str
    error_message: str
    ok: ClassVar[bool] = False

    def to_payload(self) -> Dict[str, str]:
        return {"service": self.provider_id, "error": self.error_message}


ProviderResult = Union[ProviderSuccess, ProviderFailure]


@dataclass(frozen=True)
class StoredLocation:
    id: int
    session_id: str
    location: Location
    created_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        payload = self.location.to_payload()
        payload.update(
            {
                "id": self.id,
                "sessionId": self.session_id,
                "createdAt": format_timestamp(self.created_at),
            }
        )
        return payload


@dataclass(frozen=True)
class StoredForecast:
    id: int
    location_id: int
    provider_id: str
    forecast: ForecastPoint
    forecast_timestamp: datetime
    created_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "locationId": self.location_id,
            "serviceName": self.provider_id,
            "forecastData": self.forecast.to_payload(),
            "forecastTimestamp": format_timestamp(self.forecast_timestamp),
            "createdAt": format_timestamp(self.created_at),
        }


@dataclass(frozen=True)
class StoredObservation:
    id: int
    location_id: int
    observation: WeatherObservation
    observed_timestamp: datetime
    created_at: datetime

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "locationId": self.location_id,
            "weatherData": self.observation.to_payload(),
            "observedTimestamp": format_timestamp(self.observed_timestamp),
            "createdAt": format_timestamp(self.created_at),
        }


@dataclass(frozen=True)
class AccuracyMetric:
    forecast_id: int
    observation_id: int
    accuracy_score: float
    temperature_error: Optional[float] = None
    humidity_error: Optional[float] = None
    pressure_error: Optional[float] = None
    wind_speed_error: Optional[float] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "forecastId": self.forecast_id,
            "actualWeatherId": self.observation_id,
            "accuracyScore": self.accuracy_score,
            "temperatureError": self.temperature_error,
            "humidityError": self.humidity_error,
            "pressureError": self.pressure_error,
            "windSpeedError": self.wind_speed_error,
            "createdAt": format_timestamp(self.created_at) if self.created_at else None,
        }


@dataclass(frozen=True)
class ProviderAccuracy:
    """An accuracy metric joined with the provider that made the forecast."""

    metric: AccuracyMetric
    provider_id: str
    forecast_timestamp: datetime

    def to_payload(self) -> Dict[str, Any]:
        payload = self.metric.to_payload()
        payload["serviceName"] = self.provider_id
        payload["forecastTimestamp"] = format_timestamp(self.forecast_timestamp)
        return payload


__all__ = [
    "AccuracyMetric",
    "ForecastPoint",
    "Location",
    "ProviderAccuracy",
    "ProviderFailure",
    "ProviderResult",
    "ProviderSuccess",
    "StoredForecast",
    "StoredLocation",
    "StoredObservation",
    "WeatherObservation",
    "WeatherReport",
    "format_timestamp",
    "parse_timestamp",
]
