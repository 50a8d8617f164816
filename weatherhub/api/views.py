"""REST API views for weather comparison and forecast accuracy."""
from __future__ import annotations

import logging
import secrets
import time
from typing import Optional

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from weathercore.entities import ForecastPoint, Location, WeatherObservation
from weathercore.health import HealthRegistry
from weathercore.registry import ProviderRegistry
from weathercore.services.accuracy import AccuracyEngine
from weathercore.services.comparison import AggregateFailure, ComparisonService, ValidationError
from weathercore.storage import StorageError, WeatherStore

from . import dependencies
from .schemas import ActualWeatherPayload, ForecastPayload, LocationPayload, error_details
from .schemas import ValidationError as PayloadError


logger = logging.getLogger(__name__)


def _error(message: str, status_code: int, **extra) -> Response:
    return Response({"success": False, "error": message, **extra}, status=status_code)


def _storage_failure(action: str, exc: StorageError) -> Response:
    logger.error("%s failed: %s", action, exc)
    return _error(f"Failed to {action}", status.HTTP_500_INTERNAL_SERVER_ERROR)


def generate_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


class WeatherAPIView(APIView):
    """Base view holding the injectable registry and store."""

    permission_classes = [AllowAny]
    registry: Optional[ProviderRegistry] = None
    store: Optional[WeatherStore] = None
    health: Optional[HealthRegistry] = None

    def get_registry(self) -> ProviderRegistry:
        return self.registry if self.registry is not None else dependencies.get_provider_registry()

    def get_store(self) -> WeatherStore:
        return self.store if self.store is not None else dependencies.get_weather_store()

    def get_health(self) -> HealthRegistry:
        return self.health if self.health is not None else dependencies.get_health_registry()


class WeatherCompareView(WeatherAPIView):
    """Fetch current weather and forecasts from every configured provider."""

    def get(self, request, *args, **kwargs):
        latitude = request.query_params.get("lat")
        longitude = request.query_params.get("lon")
        if not latitude or not longitude:
            return _error("Latitude and longitude are required", status.HTTP_400_BAD_REQUEST)

        try:
            comparison = ComparisonService(self.get_registry()).compare(latitude, longitude)
        except ValidationError as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)
        except AggregateFailure as exc:
            return _error(
                str(exc),
                status.HTTP_502_BAD_GATEWAY,
                errors=[failure.to_payload() for failure in exc.failures],
            )

        return Response(
            {
                "success": True,
                "comparison": comparison.to_payload(),
                "debug": {
                    "configuredServices": comparison.configured,
                    "errors": [failure.to_payload() for failure in comparison.failures] or None,
                },
            },
            status=status.HTTP_200_OK,
        )


class LocationView(WeatherAPIView):
    """Store an anonymous user location, reusing an identical one."""

    def post(self, request, *args, **kwargs):
        try:
            payload = LocationPayload.model_validate(request.data)
        except PayloadError as exc:
            return _error("Invalid request data", status.HTTP_400_BAD_REQUEST, details=error_details(exc))

        store = self.get_store()
        try:
            existing = None
            if payload.session_id:
                existing = store.find_location_by_coordinates(payload.latitude, payload.longitude, payload.session_id)
            if existing is not None:
                return Response({"success": True, "location": existing.to_payload()}, status=status.HTTP_200_OK)
            stored = store.insert_location(
                Location(latitude=payload.latitude, longitude=payload.longitude),
                payload.session_id or generate_session_id(),
            )
        except StorageError as exc:
            return _storage_failure("store location", exc)
        return Response({"success": True, "location": stored.to_payload()}, status=status.HTTP_201_CREATED)


class ForecastView(WeatherAPIView):
    """Store one provider forecast point for a location."""

    def post(self, request, *args, **kwargs):
        try:
            payload = ForecastPayload.model_validate(request.data)
        except PayloadError as exc:
            return _error("Invalid request data", status.HTTP_400_BAD_REQUEST, details=error_details(exc))

        if not self.get_registry().has(payload.service_name):
            return _error(f"Unknown service '{payload.service_name}'", status.HTTP_400_BAD_REQUEST)
        try:
            point = ForecastPoint.from_payload({"timestamp": payload.forecast_timestamp, **payload.forecast_data})
        except (KeyError, TypeError, ValueError) as exc:
            return _error("Invalid forecast data", status.HTTP_400_BAD_REQUEST, details=str(exc))

        store = self.get_store()
        try:
            if store.get_location(payload.location_id) is None:
                return _error("Unknown location", status.HTTP_400_BAD_REQUEST)
            stored = store.insert_forecast(
                payload.location_id, payload.service_name, point, payload.forecast_timestamp
            )
        except StorageError as exc:
            return _storage_failure("store forecast", exc)
        return Response({"success": True, "forecast": stored.to_payload()}, status=status.HTTP_201_CREATED)


class ActualWeatherView(WeatherAPIView):
    """Store an observed weather reading for a location."""

    def post(self, request, *args, **kwargs):
        try:
            payload = ActualWeatherPayload.model_validate(request.data)
        except PayloadError as exc:
            return _error("Invalid request data", status.HTTP_400_BAD_REQUEST, details=error_details(exc))

        try:
            observation = WeatherObservation.from_payload(
                {"timestamp": payload.observed_timestamp, **payload.weather_data}
            )
        except (KeyError, TypeError, ValueError) as exc:
            return _error("Invalid weather data", status.HTTP_400_BAD_REQUEST, details=str(exc))

        store = self.get_store()
        try:
            if store.get_location(payload.location_id) is None:
                return _error("Unknown location", status.HTTP_400_BAD_REQUEST)
            stored = store.insert_observation(payload.location_id, observation, payload.observed_timestamp)
        except StorageError as exc:
            return _storage_failure("store actual weather", exc)
        return Response({"success": True, "actualWeather": stored.to_payload()}, status=status.HTTP_201_CREATED)


class AccuracyView(WeatherAPIView):
    """Compute missing accuracy metrics for a location and return all of them."""

    def get(self, request, location_id: int, *args, **kwargs):
        store = self.get_store()
        engine = AccuracyEngine(store)
        try:
            if store.get_location(location_id) is None:
                return _error("Unknown location", status.HTTP_404_NOT_FOUND)
            engine.calculate(location_id)
            metrics = engine.metrics_for_location(location_id)
            summary = engine.summarize(location_id)
        except StorageError as exc:
            return _storage_failure("calculate accuracy metrics", exc)
        return Response(
            {
                "success": True,
                "metrics": [row.to_payload() for row in metrics],
                "summary": [item.to_payload() for item in summary],
            },
            status=status.HTTP_200_OK,
        )


class HealthView(WeatherAPIView):
    """Provider configuration status and error counters for the admin UI."""

    def get(self, request, *args, **kwargs):
        health = self.get_health()
        # building the registry publishes provider statuses into the health registry
        self.get_registry()
        return Response(health.snapshot(), status=status.HTTP_200_OK)
