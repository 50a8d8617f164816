from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from .base import UpstreamError, WeatherProvider
from .schemas import (
    NOAAForecastPeriod,
    NOAAForecastResponse,
    NOAAObservationProperties,
    NOAAObservationResponse,
    NOAAPointResponse,
    NOAAQuantity,
    NOAAStationsResponse,
)
from .. import units
from ..entities import ForecastPoint, Location, WeatherObservation, WeatherReport, parse_timestamp

FORECAST_PERIODS = 24
PERIOD_HOURS = 12

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


class NOAAProvider(WeatherProvider):
    """National Weather Service (api.weather.gov). Public, no API key."""

    provider_id = "noaa"
    display_name = "NOAA"
    base_url = "https://api.weather.gov"

    # api.weather.gov rejects requests without an identifying agent
    headers = {"User-Agent": "weatherhub (forecast comparison)", "Accept": "application/geo+json"}

    def fetch_weather(self, latitude: float, longitude: float) -> WeatherReport:
        point = self._fetch_point(latitude, longitude)
        station_id = self._nearest_station(point.properties.observation_stations)

        with ThreadPoolExecutor(max_workers=2) as pool:
            observation_future = pool.submit(self._fetch_observation, station_id)
            forecast_future = pool.submit(self._fetch_forecast, point.properties.forecast)
            observation = observation_future.result()
            forecast = forecast_future.result()

        periods = forecast.properties.periods
        return WeatherReport(
            provider_id=self.provider_id,
            current=transform_observation(observation.properties, periods[0] if periods else None),
            forecast=transform_forecast(periods),
            location=extract_location(point, latitude, longitude),
        )

    # HTTP calls ---------------------------------------------------------
    def _fetch_point(self, latitude: float, longitude: float) -> NOAAPointResponse:
        data = self._get_json(f"{self.base_url}/points/{latitude:.4f},{longitude:.4f}", headers=self.headers)
        return self._parse(NOAAPointResponse, data)

    def _nearest_station(self, stations_url: str) -> str:
        stations = self._parse(NOAAStationsResponse, self._get_json(stations_url, headers=self.headers))
        first = stations.features[0] if stations.features else None
        station_id = first.properties.station_identifier if first and first.properties else None
        if not station_id:
            raise UpstreamError("NOAA API error: No observation station found")
        self._log.debug("Nearest NOAA station is %s", station_id)
        return station_id

    def _fetch_observation(self, station_id: str) -> NOAAObservationResponse:
        data = self._get_json(f"{self.base_url}/stations/{station_id}/observations/latest", headers=self.headers)
        return self._parse(NOAAObservationResponse, data)

    def _fetch_forecast(self, forecast_url: str) -> NOAAForecastResponse:
        return self._parse(NOAAForecastResponse, self._get_json(forecast_url, headers=self.headers))


# Transformations -------------------------------------------------------------
def _value(quantity: Optional[NOAAQuantity]) -> Optional[float]:
    return quantity.value if quantity is not None else None


def _temperature(quantity: Optional[NOAAQuantity]) -> Optional[float]:
    value = _value(quantity)
    if value is not None and quantity.unit_code == "wmoUnit:degC":
        return units.celsius_to_fahrenheit(value)
    return value


def _pressure(quantity: Optional[NOAAQuantity]) -> Optional[float]:
    value = _value(quantity)
    if value is not None and quantity.unit_code == "wmoUnit:Pa":
        return units.pascals_to_hpa(value)
    return value


def _wind_speed(quantity: Optional[NOAAQuantity]) -> Optional[float]:
    value = _value(quantity)
    if value is None:
        return None
    if quantity.unit_code == "wmoUnit:m_s-1":
        return units.ms_to_mph(value)
    if quantity.unit_code == "wmoUnit:km_h-1":
        return units.kmh_to_mph(value)
    return value


def _period_temperature(period: NOAAForecastPeriod) -> Optional[float]:
    if period.temperature is None:
        return None
    if period.temperature_unit.upper() == "C":
        return units.celsius_to_fahrenheit(period.temperature)
    return period.temperature


def parse_wind_speed(text: Optional[str]) -> Optional[float]:
    """Take the leading number of strings like ``"5 to 10 mph"``."""
    if not text:
        return None
    match = _NUMBER.search(text)
    return float(match.group()) if match else None


def transform_observation(
    observation: NOAAObservationProperties,
    period: Optional[NOAAForecastPeriod],
) -> WeatherObservation:
    temperature = _temperature(observation.temperature)
    if temperature is None and period is not None:
        temperature = _period_temperature(period)

    humidity = _value(observation.relative_humidity)
    if humidity is None and period is not None:
        humidity = _value(period.relative_humidity)

    condition = observation.text_description or (period.short_forecast if period else None) or "Unknown"
    description = (period.detailed_forecast if period else None) or observation.text_description

    return WeatherObservation(
        timestamp=parse_timestamp(observation.timestamp),
        temperature=units.round_one(temperature),
        humidity=humidity,
        pressure=units.round_one(_pressure(observation.barometric_pressure)),
        wind_speed=units.round_one(_wind_speed(observation.wind_speed)),
        wind_direction=_value(observation.wind_direction),
        condition=condition,
        description=description,
    )


def transform_forecast(periods: List[NOAAForecastPeriod]) -> List[ForecastPoint]:
    points: List[ForecastPoint] = []
    for index, period in enumerate(periods[:FORECAST_PERIODS]):
        points.append(
            ForecastPoint(
                timestamp=parse_timestamp(period.start_time),
                temperature=units.round_one(_period_temperature(period)),
                humidity=_value(period.relative_humidity),
                # the gridpoint forecast carries no pressure
                pressure=units.STANDARD_PRESSURE_HPA,
                wind_speed=units.round_one(parse_wind_speed(period.wind_speed)),
                condition=period.short_forecast or "Unknown",
                description=period.detailed_forecast,
                forecast_hours=index * PERIOD_HOURS,
            )
        )
    return points


def extract_location(point: NOAAPointResponse, latitude: float, longitude: float) -> Location:
    relative = point.properties.relative_location
    props = relative.properties if relative else None
    return Location(
        latitude=latitude,
        longitude=longitude,
        city=props.city if props else None,
        state=props.state if props else None,
        country="US",
    )


__all__ = ["NOAAProvider", "extract_location", "parse_wind_speed", "transform_forecast", "transform_observation"]
