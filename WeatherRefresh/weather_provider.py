"""Provider abstractions - allow swapping weather and geocoding APIs."""
from abc import ABC, abstractmethod
from typing import List
from weather_data import PlaceInfo, WeatherSnapshot


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    @abstractmethod
    def get_current(self, lat: float, lon: float) -> WeatherSnapshot:
        """
        Fetch current weather data for a position.

        Returns:
            WeatherSnapshot: Current weather information

        Raises:
            WeatherProviderError: If the provider fails to fetch data
        """
        pass


class GeocodeProviderBase(ABC):
    """Abstract base class for reverse geocoding providers."""

    @abstractmethod
    def reverse(self, lat: float, lon: float) -> List[PlaceInfo]:
        """
        Look up the places at a position, best match first.

        Raises:
            WeatherProviderError: If the provider fails to fetch data
        """
        pass


class WeatherProviderError(Exception):
    """Exception raised when a weather or geocoding provider fails."""
    pass


class FetchError(Exception):
    """Base class for a failed update attempt."""
    pass


class NoLocationError(FetchError):
    """The location source explicitly reported that no position is available."""
    pass


class LocationUnavailableError(FetchError):
    """The location source failed while resolving a position."""
    pass


class WeatherUnavailableError(FetchError):
    """The weather fetch failed (network, HTTP or parse error, or timeout)."""
    pass


class PlaceUnavailableError(FetchError):
    """The reverse geocode failed or returned no places."""
    pass


class FetchCanceledError(FetchError):
    """The attempt was superseded or the scheduler stopped mid-flight."""
    pass
