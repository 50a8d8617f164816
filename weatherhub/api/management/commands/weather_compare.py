"""Management command to compare providers using the same stack as the API."""
from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from weathercore.entities import Location
from weathercore.services.comparison import (
    AggregateFailure,
    ComparisonService,
    ValidationError,
    persist_comparison,
)
from weathercore.storage import StorageError
from weatherhub.api import dependencies
from weatherhub.api.views import generate_session_id


class Command(BaseCommand):
    help = "Fetch current weather and forecasts from every configured provider"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--lat", type=float, help="Latitude")
        parser.add_argument("--lon", type=float, help="Longitude")
        parser.add_argument("--store", action="store_true", help="Persist forecasts and the observed reading")
        parser.add_argument(
            "--observer",
            default="noaa",
            help="Provider whose current reading is stored as the observation (default: noaa)",
        )

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        latitude = options.get("lat")
        longitude = options.get("lon")
        if latitude is None or longitude is None:
            raise CommandError("--lat and --lon are required")

        try:
            comparison = ComparisonService(dependencies.get_provider_registry()).compare(latitude, longitude)
        except ValidationError as exc:
            raise CommandError(str(exc)) from exc
        except AggregateFailure as exc:
            details = "; ".join(f"{failure.provider_id}: {failure.error_message}" for failure in exc.failures)
            raise CommandError(f"All weather services failed ({details or 'no providers configured'})") from exc

        payload = {
            "comparison": comparison.to_payload(),
            "errors": [failure.to_payload() for failure in comparison.failures],
        }

        if options.get("store"):
            store = dependencies.get_weather_store()
            try:
                stored = store.find_location_by_coordinates(latitude, longitude)
                if stored is None:
                    stored = store.insert_location(
                        Location(
                            latitude=latitude,
                            longitude=longitude,
                            city=comparison.location.city,
                            state=comparison.location.state,
                            country=comparison.location.country,
                        ),
                        generate_session_id(),
                    )
                counts = persist_comparison(store, stored.id, comparison, observer_id=options.get("observer") or None)
            except StorageError as exc:
                raise CommandError(f"Failed to store comparison: {exc}") from exc
            payload["stored"] = {"locationId": stored.id, **counts}

        self.stdout.write(json.dumps(payload))
