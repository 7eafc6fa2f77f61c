"""One update attempt: locate the device, then fetch weather and place."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from location_source import CancelToken, LocationSource
from weather_data import PlaceInfo, Position, WeatherSnapshot
from weather_provider import (
    FetchCanceledError,
    FetchError,
    GeocodeProviderBase,
    LocationUnavailableError,
    NoLocationError,
    PlaceUnavailableError,
    WeatherProviderBase,
    WeatherProviderError,
    WeatherUnavailableError,
)

T = TypeVar("T")


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a successful attempt. `place` is None when geocoding failed."""
    weather: WeatherSnapshot
    position: Position
    place: Optional[PlaceInfo] = None
    place_error: Optional[PlaceUnavailableError] = None


class FetchPipeline:
    """
    Orchestrates one refresh attempt.

    Weather and place requests go out concurrently once a position is known.
    Only the weather result decides success; a failed reverse geocode is
    reported on the result instead of failing the attempt.
    """

    def __init__(
        self,
        location_source: LocationSource,
        weather_provider: WeatherProviderBase,
        geocoder: GeocodeProviderBase,
        timeout_seconds: float = 20.0,
    ):
        """
        Args:
            location_source: Where the device position comes from
            weather_provider: Current weather API
            geocoder: Reverse geocoding API
            timeout_seconds: Upper bound for the whole attempt
        """
        self.location_source = location_source
        self.weather_provider = weather_provider
        self.geocoder = geocoder
        self.timeout_seconds = timeout_seconds

    async def fetch_once(self, cancel_token: CancelToken) -> FetchResult:
        """
        Run a single attempt.

        Raises:
            NoLocationError: The location source had no position
            LocationUnavailableError: The location source itself failed
            WeatherUnavailableError: Weather fetch failed or the attempt timed out
            FetchCanceledError: The token was canceled mid-flight
        """
        cancel_token.raise_if_cancelled()
        try:
            result = await self._cancellable(
                asyncio.wait_for(self._attempt(cancel_token), timeout=self.timeout_seconds),
                cancel_token,
            )
        except asyncio.TimeoutError:
            logging.warning(f"Update attempt timed out after {self.timeout_seconds}s")
            raise WeatherUnavailableError(f"Timed out after {self.timeout_seconds}s")
        cancel_token.raise_if_cancelled()
        return result

    @staticmethod
    async def _cancellable(awaitable: Awaitable[T], cancel_token: CancelToken) -> T:
        task = asyncio.ensure_future(awaitable)
        cancel_token.add_callback(task.cancel)
        try:
            return await task
        except asyncio.CancelledError:
            if cancel_token.cancelled:
                raise FetchCanceledError("Update attempt was canceled") from None
            raise

    async def _attempt(self, cancel_token: CancelToken) -> FetchResult:
        try:
            position = await self.location_source.get_current_position(cancel_token)
        except FetchError:
            raise
        except Exception as e:
            logging.error(f"Location request failed: {e}")
            raise LocationUnavailableError(str(e) or type(e).__name__) from e
        if position is None:
            logging.warning("Location source returned no position")
            raise NoLocationError("No location available")
        cancel_token.raise_if_cancelled()
        logging.debug(f"Position: lat={position.latitude}, lon={position.longitude}")

        loop = asyncio.get_running_loop()
        weather_result, place_result = await asyncio.gather(
            loop.run_in_executor(None, self.weather_provider.get_current, position.latitude, position.longitude),
            loop.run_in_executor(None, self._first_place, position.latitude, position.longitude),
            return_exceptions=True,
        )

        if isinstance(weather_result, BaseException):
            if isinstance(weather_result, asyncio.CancelledError):
                raise weather_result
            logging.error(f"Weather fetch failed: {weather_result}")
            raise WeatherUnavailableError(str(weather_result)) from weather_result

        place: Optional[PlaceInfo] = None
        place_error: Optional[PlaceUnavailableError] = None
        if isinstance(place_result, PlaceUnavailableError):
            logging.warning(f"Place lookup failed, keeping weather: {place_result}")
            place_error = place_result
        elif isinstance(place_result, BaseException):
            if isinstance(place_result, asyncio.CancelledError):
                raise place_result
            logging.warning(f"Place lookup failed, keeping weather: {place_result}")
            place_error = PlaceUnavailableError(str(place_result))
        else:
            place = place_result

        return FetchResult(weather=weather_result, position=position, place=place, place_error=place_error)

    def _first_place(self, lat: float, lon: float) -> PlaceInfo:
        try:
            places = self.geocoder.reverse(lat, lon)
        except WeatherProviderError as e:
            raise PlaceUnavailableError(str(e)) from e
        if not places:
            raise PlaceUnavailableError("Geocoding returned no places")
        return places[0]
