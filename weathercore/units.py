"""Conversions from provider-native units into the canonical unit set.

Canonical units are Fahrenheit, hectopascal (hPa) and miles per hour.
"""
from __future__ import annotations

import math
from typing import Optional

STANDARD_PRESSURE_HPA = 1013.25

_MS_TO_MPH = 2.237
_KMH_TO_MPH = 0.621371
_INHG_TO_HPA = 33.8639


def round_one(value: Optional[float]) -> Optional[float]:
    """Round half-up to one decimal place."""
    if value is None:
        return None
    return math.floor(value * 10 + 0.5) / 10


def celsius_to_fahrenheit(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return value * 9 / 5 + 32


def pascals_to_hpa(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return value / 100


def ms_to_mph(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return value * _MS_TO_MPH


def kmh_to_mph(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return value * _KMH_TO_MPH


def inhg_to_hpa(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return value * _INHG_TO_HPA


__all__ = [
    "STANDARD_PRESSURE_HPA",
    "celsius_to_fahrenheit",
    "inhg_to_hpa",
    "kmh_to_mph",
    "ms_to_mph",
    "pascals_to_hpa",
    "round_one",
]
