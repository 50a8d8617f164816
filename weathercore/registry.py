"""Registry that fans a coordinate query out to every weather provider."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional

from .entities import ProviderFailure, ProviderResult, ProviderSuccess, WeatherReport
from .health import HealthRegistry, ProviderStatus
from .providers.base import WeatherAdapter


logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Holds adapters keyed by provider id and fetches from them in parallel.

    Every fetch resolves into a :class:`ProviderSuccess` or a
    :class:`ProviderFailure`; exceptions raised by an adapter never leave the
    registry. A failure or a slow adapter does not affect its siblings.
    """

    def __init__(
        self,
        adapters: Iterable[WeatherAdapter] = (),
        *,
        health: Optional[HealthRegistry] = None,
    ) -> None:
        self._adapters: Dict[str, WeatherAdapter] = {}
        self.health = health
        self.register_all(adapters)

    # Registration -------------------------------------------------------
    def register(self, adapter: WeatherAdapter) -> None:
        self._adapters[adapter.provider_id] = adapter
        self._publish_statuses()

    def register_all(self, adapters: Iterable[WeatherAdapter]) -> None:
        for adapter in adapters:
            self.register(adapter)

    def unregister(self, provider_id: str) -> bool:
        removed = self._adapters.pop(provider_id, None) is not None
        if removed:
            self._publish_statuses()
        return removed

    def clear(self) -> None:
        self._adapters.clear()
        self._publish_statuses()

    def get(self, provider_id: str) -> Optional[WeatherAdapter]:
        return self._adapters.get(provider_id)

    def has(self, provider_id: str) -> bool:
        return provider_id in self._adapters

    def all(self) -> List[WeatherAdapter]:
        return list(self._adapters.values())

    def configured(self) -> List[WeatherAdapter]:
        return [adapter for adapter in self._adapters.values() if adapter.is_configured()]

    def provider_ids(self) -> List[str]:
        return list(self._adapters)

    def describe(self) -> List[ProviderStatus]:
        return [
            ProviderStatus(
                provider_id=adapter.provider_id,
                display_name=adapter.display_name,
                configured=adapter.is_configured(),
            )
            for adapter in self._adapters.values()
        ]

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._adapters

    # Fetching -----------------------------------------------------------
    def fetch_from(self, provider_id: str, latitude: float, longitude: float) -> ProviderResult:
        adapter = self._adapters.get(provider_id)
        if adapter is None:
            return self._failure(provider_id, f"Provider '{provider_id}' is not registered")
        if not adapter.is_configured():
            return self._failure(provider_id, f"Provider '{provider_id}' is not configured")
        try:
            report = adapter.fetch_weather(latitude, longitude)
        except Exception as exc:  # noqa: BLE001 - every provider fault becomes a failure result
            logger.warning("Weather provider %s failed: %s", provider_id, exc)
            return self._failure(provider_id, str(exc) or exc.__class__.__name__)
        if self.health is not None and provider_id:
            self.health.record_provider_success(provider_id)
        return ProviderSuccess(report)

    def fetch_all(self, latitude: float, longitude: float, only_configured: bool = True) -> List[ProviderResult]:
        """Fetch from every eligible adapter concurrently and wait for all of them."""
        adapters = self.configured() if only_configured else self.all()
        if not adapters:
            return []
        logger.debug(
            "Fetching %.4f,%.4f from %s",
            latitude,
            longitude,
            ", ".join(adapter.provider_id for adapter in adapters),
        )
        with ThreadPoolExecutor(max_workers=len(adapters), thread_name_prefix="provider") as pool:
            futures = [
                pool.submit(self.fetch_from, adapter.provider_id, latitude, longitude) for adapter in adapters
            ]
            wait(futures)
        return [future.result() for future in futures]

    def fetch_successful(self, latitude: float, longitude: float) -> List[WeatherReport]:
        return [result.report for result in self.fetch_all(latitude, longitude) if result.ok]

    # Helpers ------------------------------------------------------------
    def _failure(self, provider_id: str, message: str) -> ProviderFailure:
        # health counters are keyed by provider id
        if self.health is not None and provider_id:
            self.health.record_provider_error(provider_id, message)
        return ProviderFailure(provider_id=provider_id, error_message=message)

    def _publish_statuses(self) -> None:
        if self.health is not None:
            self.health.set_provider_statuses(self.describe())


__all__ = ["ProviderRegistry"]
