"""Typed views of the raw upstream payloads.

Only the fields the adapters read are declared; everything else is ignored.
Each model is converted into canonical entities inside its adapter and never
leaves the ``providers`` package.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# -- NOAA / api.weather.gov ----------------------------------------------------
class NOAAQuantity(_Payload):
    value: Optional[float] = None
    unit_code: str = Field(default="", alias="unitCode")


class NOAARelativeLocationProperties(_Payload):
    city: Optional[str] = None
    state: Optional[str] = None


class NOAARelativeLocation(_Payload):
    properties: Optional[NOAARelativeLocationProperties] = None


class NOAAPointProperties(_Payload):
    forecast: str
    observation_stations: str = Field(alias="observationStations")
    relative_location: Optional[NOAARelativeLocation] = Field(default=None, alias="relativeLocation")


class NOAAPointResponse(_Payload):
    properties: NOAAPointProperties


class NOAAStationProperties(_Payload):
    station_identifier: Optional[str] = Field(default=None, alias="stationIdentifier")


class NOAAStationFeature(_Payload):
    properties: Optional[NOAAStationProperties] = None


class NOAAStationsResponse(_Payload):
    features: List[NOAAStationFeature] = Field(default_factory=list)


class NOAAObservationProperties(_Payload):
    timestamp: str
    temperature: Optional[NOAAQuantity] = None
    relative_humidity: Optional[NOAAQuantity] = Field(default=None, alias="relativeHumidity")
    barometric_pressure: Optional[NOAAQuantity] = Field(default=None, alias="barometricPressure")
    wind_speed: Optional[NOAAQuantity] = Field(default=None, alias="windSpeed")
    wind_direction: Optional[NOAAQuantity] = Field(default=None, alias="windDirection")
    text_description: Optional[str] = Field(default=None, alias="textDescription")


class NOAAObservationResponse(_Payload):
    properties: NOAAObservationProperties


class NOAAForecastPeriod(_Payload):
    temperature: Optional[float] = None
    temperature_unit: str = Field(default="F", alias="temperatureUnit")
    relative_humidity: Optional[NOAAQuantity] = Field(default=None, alias="relativeHumidity")
    wind_speed: Optional[str] = Field(default=None, alias="windSpeed")
    wind_direction: Optional[str] = Field(default=None, alias="windDirection")
    short_forecast: Optional[str] = Field(default=None, alias="shortForecast")
    detailed_forecast: Optional[str] = Field(default=None, alias="detailedForecast")
    start_time: str = Field(alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")


class NOAAForecastProperties(_Payload):
    periods: List[NOAAForecastPeriod] = Field(default_factory=list)


class NOAAForecastResponse(_Payload):
    properties: NOAAForecastProperties


# -- OpenWeatherMap --------------------------------------------------------------
class OpenWeatherMain(_Payload):
    temp: Optional[float] = None
    humidity: Optional[float] = None
    pressure: Optional[float] = None


class OpenWeatherWind(_Payload):
    speed: Optional[float] = None
    deg: Optional[float] = None


class OpenWeatherCondition(_Payload):
    main: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None


class OpenWeatherSys(_Payload):
    country: Optional[str] = None


class OpenWeatherCurrentResponse(_Payload):
    main: OpenWeatherMain
    wind: OpenWeatherWind = Field(default_factory=OpenWeatherWind)
    weather: List[OpenWeatherCondition] = Field(default_factory=list)
    dt: int
    name: Optional[str] = None
    sys: OpenWeatherSys = Field(default_factory=OpenWeatherSys)


class OpenWeatherForecastItem(_Payload):
    main: OpenWeatherMain
    wind: OpenWeatherWind = Field(default_factory=OpenWeatherWind)
    weather: List[OpenWeatherCondition] = Field(default_factory=list)
    dt: int


class OpenWeatherCity(_Payload):
    name: Optional[str] = None
    country: Optional[str] = None


class OpenWeatherForecastResponse(_Payload):
    items: List[OpenWeatherForecastItem] = Field(default_factory=list, alias="list")
    city: OpenWeatherCity = Field(default_factory=OpenWeatherCity)


# -- WeatherAPI.com --------------------------------------------------------------
class WeatherAPICondition(_Payload):
    text: Optional[str] = None
    icon: Optional[str] = None


class WeatherAPILocation(_Payload):
    name: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None


class WeatherAPICurrent(_Payload):
    temp_f: Optional[float] = None
    humidity: Optional[float] = None
    pressure_in: Optional[float] = None
    wind_mph: Optional[float] = None
    wind_degree: Optional[float] = None
    condition: WeatherAPICondition = Field(default_factory=WeatherAPICondition)
    last_updated_epoch: int


class WeatherAPIHour(_Payload):
    time_epoch: int
    temp_f: Optional[float] = None
    humidity: Optional[float] = None
    pressure_in: Optional[float] = None
    wind_mph: Optional[float] = None
    wind_degree: Optional[float] = None
    condition: WeatherAPICondition = Field(default_factory=WeatherAPICondition)


class WeatherAPIForecastDay(_Payload):
    date_epoch: Optional[int] = None
    hour: List[WeatherAPIHour] = Field(default_factory=list)


class WeatherAPIForecast(_Payload):
    forecastday: List[WeatherAPIForecastDay] = Field(default_factory=list)


class WeatherAPIForecastResponse(_Payload):
    location: WeatherAPILocation = Field(default_factory=WeatherAPILocation)
    current: WeatherAPICurrent
    forecast: WeatherAPIForecast = Field(default_factory=WeatherAPIForecast)
