"""Weather domain model - pure data structures independent of any API."""
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

METERS_PER_MILE = 1609.34
HPA_PER_INHG = 33.864

PRECIP_NONE = "none"
PRECIP_RAIN = "rain"
PRECIP_SNOW = "snow"


@dataclass(frozen=True)
class Position:
    """A device position in decimal degrees."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Wind:
    speed: float = 0.0
    direction: int = 0  # degrees, meteorological
    gust: Optional[float] = None


@dataclass(frozen=True)
class Precipitation:
    kind: str = PRECIP_NONE  # "none", "rain" or "snow"
    amount: float = 0.0  # volume for the last hour (3h if 1h not reported)


@dataclass(frozen=True)
class WeatherSnapshot:
    """Immutable point-in-time weather reading for one location."""
    temperature: float
    temp_min: float
    temp_max: float
    feels_like: float
    humidity: float
    pressure: float  # hPa
    visibility: int  # meters
    wind: Wind
    precipitation: Precipitation
    cloud_cover: int  # percentage
    condition_code: str  # icon code, e.g. "04d"
    description: str  # e.g. "broken clouds"
    sunrise_epoch_sec: int
    sunset_epoch_sec: int
    timezone_offset_sec: int
    fetched_at_epoch_ms: int = 0

    @property
    def visibility_miles(self) -> float:
        return self.visibility / METERS_PER_MILE

    @property
    def pressure_inhg(self) -> float:
        return self.pressure / HPA_PER_INHG

    @property
    def title_description(self) -> str:
        return " ".join(word[:1].upper() + word[1:] for word in self.description.split(" "))

    def local_time(self, epoch_sec: int) -> str:
        """Format an epoch time as HH:MM in the location's own timezone."""
        tz = timezone(timedelta(seconds=self.timezone_offset_sec))
        return datetime.fromtimestamp(epoch_sec, tz).strftime("%H:%M")

    @property
    def sunrise_local(self) -> str:
        return self.local_time(self.sunrise_epoch_sec)

    @property
    def sunset_local(self) -> str:
        return self.local_time(self.sunset_epoch_sec)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeatherSnapshot":
        """
        Rebuild a snapshot from `to_dict()` output.

        Raises:
            KeyError, TypeError, ValueError: If the dict is not a valid snapshot
        """
        values = dict(data)
        values["wind"] = Wind(**values.get("wind") or {})
        values["precipitation"] = Precipitation(**values.get("precipitation") or {})
        return cls(**values)


@dataclass(frozen=True)
class PlaceInfo:
    """Reverse-geocoded place for a position."""
    name: str
    country: str
    region: Optional[str] = None  # state / province

    def label(self) -> str:
        """Display label, preferring the region over the country."""
        if self.region:
            return f"{self.name}, {self.region}"
        return f"{self.name}, {self.country}"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "country": self.country, "state": self.region}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlaceInfo":
        return cls(
            name=data["name"],
            country=data.get("country", ""),
            region=data.get("state") or None,
        )


@dataclass(frozen=True)
class UpdateState:
    """
    Scheduler-owned refresh state.

    Replaced by value at tick boundaries; only the scheduler that created it
    ever swaps it out.
    """
    last_weather: Optional[WeatherSnapshot] = None
    last_place: Optional[PlaceInfo] = None
    last_success_epoch_ms: int = 0  # 0 = never
    offline_streak_ticks: int = 0
    cycle_generation: int = 0

    @property
    def has_data(self) -> bool:
        return self.last_weather is not None
