"""Management command to score stored forecasts against stored observations."""
from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from weathercore.services.accuracy import AccuracyEngine
from weathercore.storage import StorageError
from weatherhub.api import dependencies


class Command(BaseCommand):
    help = "Calculate accuracy metrics for a stored location"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--location", type=int, required=True, help="Stored location id")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        location_id = options["location"]
        store = dependencies.get_weather_store()
        engine = AccuracyEngine(store)
        try:
            if store.get_location(location_id) is None:
                raise CommandError(f"Unknown location {location_id}")
            created = engine.calculate(location_id)
            summary = engine.summarize(location_id)
        except StorageError as exc:
            raise CommandError(f"Failed to calculate accuracy metrics: {exc}") from exc

        self.stdout.write(
            json.dumps(
                {
                    "locationId": location_id,
                    "created": len(created),
                    "summary": [item.to_payload() for item in summary],
                }
            )
        )
