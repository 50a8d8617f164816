from __future__ import annotations

import pytest

from requests_mock import Mocker

from weathercore.health import HealthRegistry
from weathercore.storage import WeatherStore
from weatherhub.api import dependencies


@pytest.fixture
def requests_mock():
    with Mocker() as mock:
        yield mock


@pytest.fixture
def store(tmp_path) -> WeatherStore:
    return WeatherStore.from_url(f"sqlite:///{tmp_path / 'weatherhub.db'}")


@pytest.fixture
def health() -> HealthRegistry:
    return HealthRegistry()


@pytest.fixture(autouse=True)
def _reset_dependencies():
    dependencies.reset()
    yield
    dependencies.reset()
