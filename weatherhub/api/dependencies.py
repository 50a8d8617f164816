"""Process-wide service instances built from Django settings.

Views and management commands call these factories; tests replace the
instances by passing their own objects to the views or by clearing the
caches.
"""
from __future__ import annotations

import logging
from functools import lru_cache

from django.conf import settings

from weathercore.health import HealthRegistry
from weathercore.providers.base import RequestConfig
from weathercore.providers.noaa import NOAAProvider
from weathercore.providers.openweather import OpenWeatherProvider
from weathercore.providers.weatherapi import WeatherAPIProvider
from weathercore.registry import ProviderRegistry
from weathercore.storage import WeatherStore


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_health_registry() -> HealthRegistry:
    return HealthRegistry()


@lru_cache(maxsize=1)
def get_provider_registry() -> ProviderRegistry:
    config = RequestConfig(timeout=settings.WEATHER_PROVIDER_TIMEOUT)
    registry = ProviderRegistry(
        (
            NOAAProvider(request_config=config),
            OpenWeatherProvider(api_key=settings.OPENWEATHER_API_KEY, request_config=config),
            WeatherAPIProvider(api_key=settings.WEATHERAPI_KEY, request_config=config),
        ),
        health=get_health_registry(),
    )
    for status in registry.describe():
        logger.info(
            "%s (%s): %s",
            status.display_name,
            status.provider_id,
            "configured" if status.configured else "NOT configured",
        )
    return registry


@lru_cache(maxsize=1)
def get_weather_store() -> WeatherStore:
    return WeatherStore.from_url(settings.WEATHERHUB_DATABASE_URL)


def reset() -> None:
    get_health_registry.cache_clear()
    get_provider_registry.cache_clear()
    get_weather_store.cache_clear()


__all__ = ["get_health_registry", "get_provider_registry", "get_weather_store", "reset"]
