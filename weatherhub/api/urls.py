"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from weatherhub.api.views import (
    AccuracyView,
    ActualWeatherView,
    ForecastView,
    HealthView,
    LocationView,
    WeatherCompareView,
)

urlpatterns = [
    path("weather/compare", WeatherCompareView.as_view(), name="weather-compare"),
    path("weather/forecast", ForecastView.as_view(), name="weather-forecast"),
    path("weather/actual", ActualWeatherView.as_view(), name="weather-actual"),
    path("location", LocationView.as_view(), name="location"),
    path("accuracy/<int:location_id>", AccuracyView.as_view(), name="accuracy"),
    path("admin/health", HealthView.as_view(), name="admin-health"),
]
