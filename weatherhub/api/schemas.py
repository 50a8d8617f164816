"""Request body schemas for the ingest endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from weathercore.entities import parse_timestamp

__all__ = ["ActualWeatherPayload", "ForecastPayload", "LocationPayload", "ValidationError", "error_details"]


def _ensure_datetime(value: Any) -> datetime:
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("must be an ISO-8601 timestamp") from exc


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LocationPayload(_Body):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class ForecastPayload(_Body):
    location_id: int = Field(alias="locationId")
    service_name: str = Field(alias="serviceName", min_length=1)
    forecast_data: Dict[str, Any] = Field(alias="forecastData")
    forecast_timestamp: datetime = Field(alias="forecastTimestamp")

    @field_validator("forecast_timestamp", mode="before")
    @classmethod
    def normalise_timestamp(cls, value: Any) -> datetime:
        return _ensure_datetime(value)


class ActualWeatherPayload(_Body):
    location_id: int = Field(alias="locationId")
    weather_data: Dict[str, Any] = Field(alias="weatherData")
    observed_timestamp: datetime = Field(alias="observedTimestamp")

    @field_validator("observed_timestamp", mode="before")
    @classmethod
    def normalise_timestamp(cls, value: Any) -> datetime:
        return _ensure_datetime(value)


def error_details(exc: ValidationError) -> List[Dict[str, Any]]:
    return [{"loc": [str(part) for part in error["loc"]], "msg": error["msg"]} for error in exc.errors()]
