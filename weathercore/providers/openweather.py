from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import List, Optional

from .base import WeatherProvider
from .schemas import (
    OpenWeatherCondition,
    OpenWeatherCurrentResponse,
    OpenWeatherForecastItem,
    OpenWeatherForecastResponse,
)
from .. import units
from ..entities import ForecastPoint, Location, WeatherObservation, WeatherReport

FORECAST_ENTRIES = 24
ENTRY_HOURS = 3


class OpenWeatherProvider(WeatherProvider):
    """OpenWeatherMap current weather and 5 day / 3 hour forecast.

    Requests use ``units=imperial`` so temperature arrives in Fahrenheit and
    wind speed in mph; pressure is always reported in hPa.
    """

    provider_id = "openweather"
    display_name = "OpenWeatherMap"
    base_url = "https://api.openweathermap.org/data/2.5"

    def __init__(self, api_key: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def fetch_weather(self, latitude: float, longitude: float) -> WeatherReport:
        self.ensure_configured()
        with ThreadPoolExecutor(max_workers=2) as pool:
            current_future = pool.submit(self._fetch_current, latitude, longitude)
            forecast_future = pool.submit(self._fetch_forecast, latitude, longitude)
            current = current_future.result()
            forecast = forecast_future.result()

        return WeatherReport(
            provider_id=self.provider_id,
            current=transform_current(current),
            forecast=transform_forecast(forecast.items),
            location=extract_location(current, forecast, latitude, longitude),
        )

    def _params(self, latitude: float, longitude: float) -> dict:
        return {"lat": latitude, "lon": longitude, "appid": self.api_key, "units": "imperial"}

    def _fetch_current(self, latitude: float, longitude: float) -> OpenWeatherCurrentResponse:
        data = self._get_json(f"{self.base_url}/weather", params=self._params(latitude, longitude))
        return self._parse(OpenWeatherCurrentResponse, data)

    def _fetch_forecast(self, latitude: float, longitude: float) -> OpenWeatherForecastResponse:
        data = self._get_json(f"{self.base_url}/forecast", params=self._params(latitude, longitude))
        return self._parse(OpenWeatherForecastResponse, data)


def _condition(conditions: List[OpenWeatherCondition]) -> OpenWeatherCondition:
    return conditions[0] if conditions else OpenWeatherCondition()


def _epoch(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


def transform_current(current: OpenWeatherCurrentResponse) -> WeatherObservation:
    condition = _condition(current.weather)
    return WeatherObservation(
        timestamp=_epoch(current.dt),
        temperature=units.round_one(current.main.temp),
        humidity=current.main.humidity,
        pressure=units.round_one(current.main.pressure),
        wind_speed=units.round_one(current.wind.speed),
        wind_direction=current.wind.deg,
        condition=condition.main or "Unknown",
        description=condition.description or "",
        icon=condition.icon or "",
    )


def transform_forecast(items: List[OpenWeatherForecastItem]) -> List[ForecastPoint]:
    points: List[ForecastPoint] = []
    for index, item in enumerate(items[:FORECAST_ENTRIES]):
        condition = _condition(item.weather)
        points.append(
            ForecastPoint(
                timestamp=_epoch(item.dt),
                temperature=units.round_one(item.main.temp),
                humidity=item.main.humidity,
                pressure=units.round_one(item.main.pressure),
                wind_speed=units.round_one(item.wind.speed),
                wind_direction=item.wind.deg,
                condition=condition.main or "Unknown",
                description=condition.description or "",
                icon=condition.icon or "",
                forecast_hours=index * ENTRY_HOURS,
            )
        )
    return points


def extract_location(
    current: OpenWeatherCurrentResponse,
    forecast: OpenWeatherForecastResponse,
    latitude: float,
    longitude: float,
) -> Location:
    return Location(
        latitude=latitude,
        longitude=longitude,
        city=current.name or forecast.city.name,
        country=current.sys.country or forecast.city.country,
    )


__all__ = ["OpenWeatherProvider", "extract_location", "transform_current", "transform_forecast"]
