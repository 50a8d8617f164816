"""sqlite persistence for locations, forecasts, observations and accuracy metrics."""
from __future__ import annotations

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from .entities import (
    AccuracyMetric,
    ForecastPoint,
    Location,
    ProviderAccuracy,
    StoredForecast,
    StoredLocation,
    StoredObservation,
    WeatherObservation,
    format_timestamp,
    parse_timestamp,
)


logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the persistence layer fails, as opposed to a domain error."""


class DatabaseSession:
    """Minimal DB-API session wrapper."""

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        cursor = self.connection.cursor()
        cursor.execute(sql, params)
        return cursor

    def fetchone(self, sql: str, params: tuple = ()):
        cursor = self.execute(sql, params)
        row = cursor.fetchone()
        cursor.close()
        return row

    def fetchall(self, sql: str, params: tuple = ()):
        cursor = self.execute(sql, params)
        rows = cursor.fetchall()
        cursor.close()
        return rows

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def close(self) -> None:
        self.connection.close()


class SessionFactory:
    def __init__(self, url: str):
        self.url = url
        self.path = sqlite_path(url)

    def __call__(self) -> DatabaseSession:
        connection = sqlite3.connect(self.path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys=ON")
        return DatabaseSession(connection)


def default_database_url() -> str:
    return os.getenv("WEATHERHUB_DATABASE_URL", "sqlite:///./weatherhub.db")


def sqlite_path(url: str) -> str:
    parsed = urlparse(url)
    if not parsed.scheme:
        return os.path.abspath(url)
    if not parsed.scheme.startswith("sqlite"):
        raise ValueError(f"Unsupported database scheme: {parsed.scheme}")
    path = unquote(parsed.path or parsed.netloc)
    if not path or path.lstrip("/") == ":memory:":
        return ":memory:"
    # sqlite:///relative.db parses to "/relative.db", sqlite:////abs.db to "//abs.db"
    if path.startswith("//"):
        return path[1:]
    return os.path.abspath(path.lstrip("/"))


@contextmanager
def session_scope(session_factory: SessionFactory) -> Iterator[DatabaseSession]:
    try:
        session = session_factory()
    except sqlite3.Error as exc:
        raise StorageError(f"could not open database: {exc}") from exc
    try:
        yield session
        session.commit()
    except sqlite3.Error as exc:
        session.rollback()
        logger.error("Database operation failed", exc_info=exc)
        raise StorageError(str(exc)) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS locations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id TEXT NOT NULL,
        latitude REAL NOT NULL,
        longitude REAL NOT NULL,
        city TEXT,
        state TEXT,
        country TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_locations_coordinates
    ON locations (latitude, longitude)
    """,
    """
    CREATE TABLE IF NOT EXISTS forecasts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        location_id INTEGER NOT NULL,
        service_name TEXT NOT NULL,
        forecast_data TEXT NOT NULL,
        forecast_timestamp TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY(location_id) REFERENCES locations(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS actual_weather (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        location_id INTEGER NOT NULL,
        weather_data TEXT NOT NULL,
        observed_timestamp TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY(location_id) REFERENCES locations(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS accuracy_metrics (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        forecast_id INTEGER NOT NULL,
        actual_weather_id INTEGER NOT NULL,
        accuracy_score REAL NOT NULL,
        temperature_error REAL,
        humidity_error REAL,
        pressure_error REAL,
        wind_speed_error REAL,
        created_at TEXT NOT NULL,
        FOREIGN KEY(forecast_id) REFERENCES forecasts(id) ON DELETE CASCADE,
        FOREIGN KEY(actual_weather_id) REFERENCES actual_weather(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_accuracy_pair
    ON accuracy_metrics (forecast_id, actual_weather_id)
    """,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _location_from_row(row) -> StoredLocation:
    return StoredLocation(
        id=row["id"],
        session_id=row["session_id"],
        location=Location(
            latitude=row["latitude"],
            longitude=row["longitude"],
            city=row["city"],
            state=row["state"],
            country=row["country"],
        ),
        created_at=parse_timestamp(row["created_at"]),
    )


def _forecast_from_row(row) -> StoredForecast:
    return StoredForecast(
        id=row["id"],
        location_id=row["location_id"],
        provider_id=row["service_name"],
        forecast=ForecastPoint.from_payload(json.loads(row["forecast_data"])),
        forecast_timestamp=parse_timestamp(row["forecast_timestamp"]),
        created_at=parse_timestamp(row["created_at"]),
    )


def _observation_from_row(row) -> StoredObservation:
    return StoredObservation(
        id=row["id"],
        location_id=row["location_id"],
        observation=WeatherObservation.from_payload(json.loads(row["weather_data"])),
        observed_timestamp=parse_timestamp(row["observed_timestamp"]),
        created_at=parse_timestamp(row["created_at"]),
    )


def _metric_from_row(row) -> AccuracyMetric:
    return AccuracyMetric(
        id=row["id"],
        forecast_id=row["forecast_id"],
        observation_id=row["actual_weather_id"],
        accuracy_score=row["accuracy_score"],
        temperature_error=row["temperature_error"],
        humidity_error=row["humidity_error"],
        pressure_error=row["pressure_error"],
        wind_speed_error=row["wind_speed_error"],
        created_at=parse_timestamp(row["created_at"]),
    )


class WeatherStore:
    """Persistence service used by the ingest endpoints and the accuracy engine.

    Each method runs in its own transaction. Failures surface as
    :class:`StorageError`.
    """

    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        self.session_factory = session_factory or SessionFactory(default_database_url())
        self.run_migrations()

    @classmethod
    def from_url(cls, url: str) -> "WeatherStore":
        return cls(SessionFactory(url))

    def run_migrations(self) -> None:
        with session_scope(self.session_factory) as session:
            for statement in SCHEMA:
                session.execute(statement)

    # -- Locations ----------------------------------------------------------
    def insert_location(self, location: Location, session_id: str) -> StoredLocation:
        now = utcnow()
        with session_scope(self.session_factory) as session:
            cursor = session.execute(
                """
                INSERT INTO locations (session_id, latitude, longitude, city, state, country, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    location.latitude,
                    location.longitude,
                    location.city,
                    location.state,
                    location.country,
                    format_timestamp(now),
                ),
            )
            location_id = cursor.lastrowid
        return StoredLocation(id=location_id, session_id=session_id, location=location, created_at=now)

    def find_location_by_coordinates(
        self, latitude: float, longitude: float, session_id: Optional[str] = None
    ) -> Optional[StoredLocation]:
        sql = "SELECT * FROM locations WHERE latitude = ? AND longitude = ?"
        params: Tuple[Any, ...] = (latitude, longitude)
        if session_id is not None:
            sql += " AND session_id = ?"
            params += (session_id,)
        with session_scope(self.session_factory) as session:
            row = session.fetchone(sql + " ORDER BY id LIMIT 1", params)
        return _location_from_row(row) if row else None

    def get_location(self, location_id: int) -> Optional[StoredLocation]:
        with session_scope(self.session_factory) as session:
            row = session.fetchone("SELECT * FROM locations WHERE id = ?", (location_id,))
        return _location_from_row(row) if row else None

    # -- Forecasts and observations -----------------------------------------
    def insert_forecast(
        self,
        location_id: int,
        provider_id: str,
        forecast: ForecastPoint,
        forecast_timestamp: Optional[datetime] = None,
    ) -> StoredForecast:
        now = utcnow()
        forecast_timestamp = forecast_timestamp or forecast.timestamp
        with session_scope(self.session_factory) as session:
            cursor = session.execute(
                """
                INSERT INTO forecasts (location_id, service_name, forecast_data, forecast_timestamp, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    location_id,
                    provider_id,
                    json.dumps(forecast.to_payload()),
                    format_timestamp(forecast_timestamp),
                    format_timestamp(now),
                ),
            )
            forecast_id = cursor.lastrowid
        return StoredForecast(
            id=forecast_id,
            location_id=location_id,
            provider_id=provider_id,
            forecast=forecast,
            forecast_timestamp=parse_timestamp(forecast_timestamp),
            created_at=now,
        )

    def insert_observation(
        self,
        location_id: int,
        observation: WeatherObservation,
        observed_timestamp: Optional[datetime] = None,
    ) -> StoredObservation:
        now = utcnow()
        observed_timestamp = observed_timestamp or observation.timestamp
        with session_scope(self.session_factory) as session:
            cursor = session.execute(
                """
                INSERT INTO actual_weather (location_id, weather_data, observed_timestamp, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    location_id,
                    json.dumps(observation.to_payload()),
                    format_timestamp(observed_timestamp),
                    format_timestamp(now),
                ),
            )
            observation_id = cursor.lastrowid
        return StoredObservation(
            id=observation_id,
            location_id=location_id,
            observation=observation,
            observed_timestamp=parse_timestamp(observed_timestamp),
            created_at=now,
        )

    def list_forecasts_by_location(self, location_id: int) -> List[StoredForecast]:
        with session_scope(self.session_factory) as session:
            rows = session.fetchall("SELECT * FROM forecasts WHERE location_id = ? ORDER BY id", (location_id,))
        return [_forecast_from_row(row) for row in rows]

    def list_observations_by_location(self, location_id: int) -> List[StoredObservation]:
        with session_scope(self.session_factory) as session:
            rows = session.fetchall(
                "SELECT * FROM actual_weather WHERE location_id = ? ORDER BY id", (location_id,)
            )
        return [_observation_from_row(row) for row in rows]

    # -- Accuracy metrics -----------------------------------------------------
    def find_accuracy_metric(self, forecast_id: int, observation_id: int) -> Optional[AccuracyMetric]:
        with session_scope(self.session_factory) as session:
            row = session.fetchone(
                "SELECT * FROM accuracy_metrics WHERE forecast_id = ? AND actual_weather_id = ? LIMIT 1",
                (forecast_id, observation_id),
            )
        return _metric_from_row(row) if row else None

    def insert_accuracy_metric(self, metric: AccuracyMetric) -> AccuracyMetric:
        now = utcnow()
        with session_scope(self.session_factory) as session:
            cursor = session.execute(
                """
                INSERT INTO accuracy_metrics (
                    forecast_id,
                    actual_weather_id,
                    accuracy_score,
                    temperature_error,
                    humidity_error,
                    pressure_error,
                    wind_speed_error,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    metric.forecast_id,
                    metric.observation_id,
                    metric.accuracy_score,
                    metric.temperature_error,
                    metric.humidity_error,
                    metric.pressure_error,
                    metric.wind_speed_error,
                    format_timestamp(now),
                ),
            )
            metric_id = cursor.lastrowid
        return AccuracyMetric(
            id=metric_id,
            forecast_id=metric.forecast_id,
            observation_id=metric.observation_id,
            accuracy_score=metric.accuracy_score,
            temperature_error=metric.temperature_error,
            humidity_error=metric.humidity_error,
            pressure_error=metric.pressure_error,
            wind_speed_error=metric.wind_speed_error,
            created_at=now,
        )

    def list_accuracy_metrics_by_location(self, location_id: int) -> List[ProviderAccuracy]:
        with session_scope(self.session_factory) as session:
            rows = session.fetchall(
                """
                SELECT accuracy_metrics.*, forecasts.service_name, forecasts.forecast_timestamp
                FROM accuracy_metrics
                INNER JOIN forecasts ON accuracy_metrics.forecast_id = forecasts.id
                WHERE forecasts.location_id = ?
                ORDER BY accuracy_metrics.id
                """,
                (location_id,),
            )
        return [
            ProviderAccuracy(
                metric=_metric_from_row(row),
                provider_id=row["service_name"],
                forecast_timestamp=parse_timestamp(row["forecast_timestamp"]),
            )
            for row in rows
        ]


__all__ = ["DatabaseSession", "SessionFactory", "StorageError", "WeatherStore", "session_scope"]
