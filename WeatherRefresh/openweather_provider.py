"""OpenWeather Current Weather and Reverse Geocoding API providers."""
import logging
import time
import requests
from typing import Any, Dict, List
from weather_provider import GeocodeProviderBase, WeatherProviderBase, WeatherProviderError
from weather_data import (
    PRECIP_NONE,
    PRECIP_RAIN,
    PRECIP_SNOW,
    PlaceInfo,
    Precipitation,
    WeatherSnapshot,
    Wind,
)

DEFAULT_BASE_URL = "https://api.openweathermap.org/"


def _handle_error_response(response: requests.Response) -> None:
    """Parse and raise error from OpenWeather error response."""
    try:
        error_data = response.json()
    except ValueError:
        # Not JSON, use HTTP status
        logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
        raise WeatherProviderError(
            f"HTTP {response.status_code}: {response.text[:200]}"
        )

    cod = error_data.get("cod", response.status_code)
    message = error_data.get("message", "Unknown error")
    parameters = error_data.get("parameters", [])

    logging.error(f"OpenWeather API error response: {error_data}")

    error_msg = f"OpenWeather API error {cod}: {message}"
    if parameters:
        error_msg += f" (parameters: {', '.join(parameters)})"

    raise WeatherProviderError(error_msg)


def _precip_volume(block: Dict[str, Any]) -> float:
    if not block:
        return 0.0
    return block.get("1h", block.get("3h", 0.0)) or 0.0


def parse_precipitation(data: Dict[str, Any]) -> Precipitation:
    """Snow wins over rain when both are reported."""
    snow = _precip_volume(data.get("snow", {}))
    rain = _precip_volume(data.get("rain", {}))
    if snow > 0:
        return Precipitation(kind=PRECIP_SNOW, amount=snow)
    if rain > 0:
        return Precipitation(kind=PRECIP_RAIN, amount=rain)
    return Precipitation(kind=PRECIP_NONE, amount=0.0)


class OpenWeatherProvider(WeatherProviderBase):
    """
    Weather provider using OpenWeather Current Weather API.

    Uses the free Current Weather API: https://openweathermap.org/current
    The position is passed per call since it follows the device.
    """

    PATH = "data/2.5/weather"

    def __init__(
        self,
        api_key: str,
        units: str = "imperial",
        lang: str = "en",
        timeout: int = 10,
        base_url: str = DEFAULT_BASE_URL,
    ):
        """
        Initialize OpenWeather provider.

        Args:
            api_key: OpenWeather API key
            units: Temperature units ("metric", "imperial", or "standard")
            lang: Language code for descriptions (e.g., "en", "de")
            timeout: HTTP request timeout in seconds
            base_url: API root, overridable for proxies and tests
        """
        self.api_key = api_key
        self.units = units
        self.lang = lang
        self.timeout = timeout
        self.url = base_url.rstrip("/") + "/" + self.PATH

    def get_current(self, lat: float, lon: float) -> WeatherSnapshot:
        """
        Fetch current weather from OpenWeather Current Weather API.

        Returns:
            WeatherSnapshot: Current weather information

        Raises:
            WeatherProviderError: If the API request fails
        """
        params = {
            "lat": lat,
            "lon": lon,
            "appid": self.api_key,
            "units": self.units,
            "lang": self.lang,
        }

        try:
            logging.info(f"Making OpenWeather API request: {self.url}")
            logging.debug(f"Request parameters: lat={lat}, lon={lon}, units={self.units}, lang={self.lang}")

            response = requests.get(self.url, params=params, timeout=self.timeout)

            logging.info(f"API response status: {response.status_code}")

            if not response.ok:
                logging.error(f"API request failed with status {response.status_code}")
                _handle_error_response(response)

            data = response.json()
            logging.debug(f"API response (truncated): {str(data)[:500]}...")

            weather_array = data.get("weather", [])
            if not weather_array:
                logging.error("Response missing 'weather' array")
                raise WeatherProviderError("Response missing 'weather' array")
            weather = weather_array[0]

            main_data = data.get("main", {})
            if not main_data:
                raise WeatherProviderError("Response missing 'main' block")

            wind_data = data.get("wind", {}) or {}
            sys_data = data.get("sys", {}) or {}
            clouds_data = data.get("clouds", {}) or {}

            snapshot = WeatherSnapshot(
                temperature=main_data["temp"],
                temp_min=main_data.get("temp_min", main_data["temp"]),
                temp_max=main_data.get("temp_max", main_data["temp"]),
                feels_like=main_data.get("feels_like", main_data["temp"]),
                humidity=main_data.get("humidity", 0.0),
                pressure=main_data.get("pressure", 0.0),
                visibility=data.get("visibility", 0),
                wind=Wind(
                    speed=wind_data.get("speed", 0.0),
                    direction=wind_data.get("deg", 0),
                    gust=wind_data.get("gust"),
                ),
                precipitation=parse_precipitation(data),
                cloud_cover=clouds_data.get("all", 0),
                condition_code=weather.get("icon", ""),
                description=weather.get("description", ""),
                sunrise_epoch_sec=sys_data.get("sunrise", 0),
                sunset_epoch_sec=sys_data.get("sunset", 0),
                timezone_offset_sec=data.get("timezone", 0),
                fetched_at_epoch_ms=int(time.time() * 1000),
            )

            logging.info(f"Successfully parsed weather data: {snapshot.temperature}°, {snapshot.description}")
            return snapshot

        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise WeatherProviderError(f"Network error: {str(e)}")
        except (KeyError, ValueError, TypeError) as e:
            logging.error(f"Failed to parse API response: {e}", exc_info=True)
            raise WeatherProviderError(f"Failed to parse response: {str(e)}")


class OpenWeatherGeocoder(GeocodeProviderBase):
    """Reverse geocoding via https://openweathermap.org/api/geocoding-api."""

    PATH = "geo/1.0/reverse"

    def __init__(self, api_key: str, limit: int = 1, timeout: int = 10, base_url: str = DEFAULT_BASE_URL):
        self.api_key = api_key
        self.limit = limit
        self.timeout = timeout
        self.url = base_url.rstrip("/") + "/" + self.PATH

    def reverse(self, lat: float, lon: float) -> List[PlaceInfo]:
        params = {"lat": lat, "lon": lon, "limit": self.limit, "appid": self.api_key}
        try:
            logging.info(f"Making OpenWeather geocoding request: {self.url}")
            response = requests.get(self.url, params=params, timeout=self.timeout)
            if not response.ok:
                logging.error(f"Geocoding request failed with status {response.status_code}")
                _handle_error_response(response)

            data = response.json()
            if not isinstance(data, list):
                raise WeatherProviderError("Geocoding response is not a list")
            places = [PlaceInfo.from_dict(item) for item in data]
            logging.debug(f"Geocoding returned {len(places)} place(s)")
            return places

        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during geocoding request: {e}")
            raise WeatherProviderError(f"Network error: {str(e)}")
        except (KeyError, ValueError, TypeError) as e:
            logging.error(f"Failed to parse geocoding response: {e}")
            raise WeatherProviderError(f"Failed to parse response: {str(e)}")
