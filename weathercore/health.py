"""In-memory health registry for the admin endpoint.

Provider fan-out reports into this registry instead of printing to the
console; the HTTP layer exposes :meth:`HealthRegistry.snapshot`. The registry
is per process and thread safe because fan-out runs on worker threads.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, Iterable, Optional


@dataclass(frozen=True)
class ProviderStatus:
    """Configuration status of one registered provider."""

    provider_id: str
    display_name: str
    configured: bool

    def as_dict(self) -> Dict[str, object]:
        return {"displayName": self.display_name, "configured": self.configured}


class HealthRegistry:
    """Stores provider error counters, last errors and last successes."""

    def __init__(self) -> None:
        self._provider_errors: Dict[str, int] = {}
        self._last_errors: Dict[str, str] = {}
        self._last_success: Dict[str, str] = {}
        self._statuses: Dict[str, ProviderStatus] = {}
        self._lock = Lock()

    # -- Provider outcomes --------------------------------------------------
    def record_provider_error(self, provider: str, message: str = "", increment: int = 1) -> None:
        if not provider:
            raise ValueError("provider must be provided")
        if increment <= 0:
            raise ValueError("increment must be positive")
        with self._lock:
            self._provider_errors[provider] = self._provider_errors.get(provider, 0) + increment
            if message:
                self._last_errors[provider] = message

    def record_provider_success(self, provider: str, when: Optional[datetime] = None) -> None:
        if not provider:
            raise ValueError("provider must be provided")
        when = when or datetime.now(timezone.utc)
        with self._lock:
            self._last_success[provider] = self._format_datetime(when)

    def drain_provider_errors(self) -> Dict[str, int]:
        with self._lock:
            snapshot = dict(self._provider_errors)
            self._provider_errors.clear()
            return snapshot

    # -- Configuration status -------------------------------------------------
    def set_provider_statuses(self, statuses: Iterable[ProviderStatus]) -> None:
        with self._lock:
            self._statuses = {status.provider_id: status for status in statuses}

    # -- Snapshot -----------------------------------------------------------
    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            return {
                "providers": {key: status.as_dict() for key, status in self._statuses.items()},
                "errors": dict(self._provider_errors),
                "lastErrors": dict(self._last_errors),
                "lastSuccess": dict(self._last_success),
            }

    @staticmethod
    def _format_datetime(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()


__all__ = ["HealthRegistry", "ProviderStatus"]
