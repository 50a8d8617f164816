from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from requests import Response

from .base import UpstreamError, WeatherProvider, error_detail
from .schemas import WeatherAPICurrent, WeatherAPIForecastDay, WeatherAPIForecastResponse, WeatherAPIHour
from .. import units
from ..entities import ForecastPoint, Location, WeatherObservation, WeatherReport

FORECAST_HOURS = 24
FORECAST_DAYS = 3


class WeatherAPIProvider(WeatherProvider):
    """WeatherAPI.com; current conditions and hourly forecast come in one response."""

    provider_id = "weatherapi"
    display_name = "WeatherAPI.com"
    base_url = "https://api.weatherapi.com/v1"

    def __init__(self, api_key: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def fetch_weather(self, latitude: float, longitude: float) -> WeatherReport:
        self.ensure_configured()
        params = {
            "key": self.api_key,
            "q": f"{latitude},{longitude}",
            "days": FORECAST_DAYS,
            "aqi": "no",
            "alerts": "no",
        }
        data = self._parse(WeatherAPIForecastResponse, self._get_json(f"{self.base_url}/forecast.json", params=params))
        return WeatherReport(
            provider_id=self.provider_id,
            current=transform_current(data.current),
            forecast=transform_forecast(data.forecast.forecastday),
            location=extract_location(data, latitude, longitude),
        )

    def _handle_response(self, response: Response) -> Response:
        if response.status_code < 400:
            return response
        detail = error_detail(response) or response.reason or "Unknown error"
        if response.status_code == 401 or "API key" in detail:
            self._log.error("WeatherAPI rejected the API key: %s", detail)
            raise UpstreamError(f"WeatherAPI error: Invalid API key - {detail}. Check WEATHERAPI_KEY")
        return super()._handle_response(response)


def _epoch(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


def transform_current(current: WeatherAPICurrent) -> WeatherObservation:
    return WeatherObservation(
        timestamp=_epoch(current.last_updated_epoch),
        temperature=units.round_one(current.temp_f),
        humidity=current.humidity,
        pressure=units.round_one(units.inhg_to_hpa(current.pressure_in)),
        wind_speed=units.round_one(current.wind_mph),
        wind_direction=current.wind_degree,
        condition=current.condition.text or "Unknown",
        description=current.condition.text,
        icon=current.condition.icon,
    )


def _hour_point(hour: WeatherAPIHour, offset: int) -> ForecastPoint:
    return ForecastPoint(
        timestamp=_epoch(hour.time_epoch),
        temperature=units.round_one(hour.temp_f),
        humidity=hour.humidity,
        pressure=units.round_one(units.inhg_to_hpa(hour.pressure_in)),
        wind_speed=units.round_one(hour.wind_mph),
        wind_direction=hour.wind_degree,
        condition=hour.condition.text or "Unknown",
        description=hour.condition.text,
        icon=hour.condition.icon,
        forecast_hours=offset,
    )


def transform_forecast(days: List[WeatherAPIForecastDay]) -> List[ForecastPoint]:
    """Flatten day -> hour into at most 24 chronological points."""
    points: List[ForecastPoint] = []
    for day in days:
        for hour in day.hour:
            points.append(_hour_point(hour, len(points)))
            if len(points) >= FORECAST_HOURS:
                return points
    return points


def extract_location(data: WeatherAPIForecastResponse, latitude: float, longitude: float) -> Location:
    return Location(
        latitude=latitude,
        longitude=longitude,
        city=data.location.name,
        state=data.location.region,
        country=data.location.country,
    )


__all__ = ["WeatherAPIProvider", "extract_location", "transform_current", "transform_forecast"]
