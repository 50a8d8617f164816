from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Type, TypeVar

import requests
from pydantic import BaseModel
from pydantic import ValidationError as PayloadValidationError
from requests import Response

from ..entities import WeatherReport


SchemaT = TypeVar("SchemaT", bound=BaseModel)

DEFAULT_TIMEOUT = 10.0


class ProviderError(RuntimeError):
    """Base provider error."""


class ConfigurationError(ProviderError):
    """Raised when a provider is used without the credential it needs."""


class UpstreamError(ProviderError):
    """Raised on a non-2xx response, a transport failure or a malformed payload."""


class UpstreamTimeout(UpstreamError):
    """Raised when a provider call exceeds its timeout."""


@dataclass
class RequestConfig:
    """Per-adapter HTTP settings.

    ``timeout`` is handed to ``requests`` and bounds the connect and every
    socket read separately. It is not a deadline for the whole call, so an
    upstream that keeps trickling bytes can take longer.
    """

    timeout: float = DEFAULT_TIMEOUT


class WeatherAdapter(Protocol):
    """A weather data source the registry can fan out to."""

    provider_id: str
    display_name: str

    def is_configured(self) -> bool:
        """Return True when the adapter can be called without a network round trip failing on credentials."""
        ...

    def fetch_weather(self, latitude: float, longitude: float) -> WeatherReport:
        """Fetch and normalize current conditions and forecast for the coordinates."""
        ...


class WeatherProvider:
    """Base class that adds timeouts and error mapping for HTTP providers."""

    provider_id: str = ""
    display_name: str = ""
    base_url: str = ""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self.request_config = request_config or RequestConfig()
        self.session = session or requests.Session()
        self.base_url = (base_url or self.base_url).rstrip("/")
        self._log = logging.getLogger(self.__class__.__name__)

    @property
    def timeout(self) -> float:
        return self.request_config.timeout

    def is_configured(self) -> bool:
        return True

    def ensure_configured(self) -> None:
        if not self.is_configured():
            raise ConfigurationError(f"{self.display_name} API key not configured")

    def _handle_response(self, response: Response) -> Response:
        if response.status_code >= 400:
            detail = error_detail(response)
            self._log.error("Provider returned %s: %s", response.status_code, detail or response.text)
            message = f"{self.display_name} API error: {response.status_code} {response.reason or ''}".rstrip()
            if detail:
                message = f"{message} - {detail}"
            raise UpstreamError(message)
        return response

    def _request(self, method: str, url: str, **kwargs: Any) -> Response:
        try:
            response = self.session.request(
                method,
                url,
                timeout=self.request_config.timeout,
                **kwargs,
            )
        except requests.Timeout as exc:
            self._log.error("Request to %s timed out", url, exc_info=exc)
            raise UpstreamTimeout(
                f"{self.display_name} request timed out after {self.request_config.timeout:g}s"
            ) from exc
        except requests.RequestException as exc:
            self._log.error("Request to %s failed", url, exc_info=exc)
            raise UpstreamError(f"{self.display_name} request failed: {exc}") from exc
        return self._handle_response(response)

    def _get_json(self, url: str, **kwargs: Any) -> Any:
        response = self._request("GET", url, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON", exc_info=exc)
            raise UpstreamError(f"{self.display_name} returned invalid JSON") from exc

    def _parse(self, schema: Type[SchemaT], data: Any) -> SchemaT:
        try:
            return schema.model_validate(data)
        except PayloadValidationError as exc:
            self._log.error("Malformed %s payload: %s", schema.__name__, exc)
            raise UpstreamError(f"{self.display_name} returned a malformed payload") from exc


def error_detail(response: Response) -> Optional[str]:
    try:
        body: Dict[str, Any] = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if body.get("message"):
        return str(body["message"])
    return None


__all__ = [
    "ConfigurationError",
    "DEFAULT_TIMEOUT",
    "ProviderError",
    "RequestConfig",
    "UpstreamError",
    "UpstreamTimeout",
    "WeatherAdapter",
    "WeatherProvider",
    "error_detail",
]
