"""Shared fixtures and fakes for the refresh tests."""
import asyncio
import dataclasses
from typing import List, Optional

import pytest

from location_source import CancelToken, LocationSource
from weather_data import PlaceInfo, Position, Precipitation, WeatherSnapshot, Wind
from weather_provider import GeocodeProviderBase, WeatherProviderBase

FORT_WORTH = Position(latitude=32.7555, longitude=-97.3308)
NOW_MS = 1_700_000_000_000


def make_snapshot(**overrides) -> WeatherSnapshot:
    snapshot = WeatherSnapshot(
        temperature=72.0,
        temp_min=68.0,
        temp_max=75.0,
        feels_like=71.5,
        humidity=60.0,
        pressure=1013.0,
        visibility=10000,
        wind=Wind(speed=5.2, direction=93, gust=8.0),
        precipitation=Precipitation(),
        cloud_cover=40,
        condition_code="03d",
        description="scattered clouds",
        sunrise_epoch_sec=1699966800,
        sunset_epoch_sec=1700005200,
        timezone_offset_sec=-21600,
        fetched_at_epoch_ms=NOW_MS,
    )
    return dataclasses.replace(snapshot, **overrides)


class MockWeatherProvider(WeatherProviderBase):
    """Mock weather provider for testing."""

    def __init__(self, return_data=None, raise_error=None):
        self.return_data = return_data
        self.raise_error = raise_error
        self.call_count = 0
        self.calls = []

    def get_current(self, lat, lon):
        self.call_count += 1
        self.calls.append((lat, lon))
        if self.raise_error:
            raise self.raise_error
        return self.return_data


class MockGeocoder(GeocodeProviderBase):
    def __init__(self, places: Optional[List[PlaceInfo]] = None, raise_error=None):
        self.places = places if places is not None else []
        self.raise_error = raise_error
        self.call_count = 0

    def reverse(self, lat, lon):
        self.call_count += 1
        if self.raise_error:
            raise self.raise_error
        return self.places


class BlockingLocationSource(LocationSource):
    """Never resolves on its own; signals `entered` once a request is waiting."""

    def __init__(self):
        self.entered = asyncio.Event()
        self.tokens = []

    async def get_current_position(self, cancel_token: CancelToken):
        self.tokens.append(cancel_token)
        self.entered.set()
        await asyncio.Event().wait()


class FailingLocationSource(LocationSource):
    """Raises from the location client itself instead of reporting no position."""

    def __init__(self, error: Exception):
        self.error = error
        self.call_count = 0

    async def get_current_position(self, cancel_token: CancelToken):
        self.call_count += 1
        raise self.error


async def no_sleep(_seconds):
    await asyncio.sleep(0)


@pytest.fixture
def sample_weather():
    return make_snapshot()


@pytest.fixture
def fort_worth():
    return PlaceInfo(name="Fort Worth", country="US", region="TX")
