"""Display sinks - allow swapping the real output with test backends."""
import logging
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, TextIO

from staleness import UPDATING, StatusMessage
from weather_data import PRECIP_RAIN, PRECIP_SNOW, PlaceInfo, WeatherSnapshot

SPEED_UNITS = {"imperial": "mph", "metric": "m/s", "standard": "m/s"}
TEMP_UNITS = {"imperial": "°F", "metric": "°C", "standard": "K"}


class TickOutcome(Enum):
    ONLINE_SUCCESS = "online_success"
    ONLINE_FAILURE = "online_failure"
    OFFLINE_FALLBACK = "offline_fallback"
    OFFLINE_NO_DATA = "offline_no_data"

    @property
    def is_fallback(self) -> bool:
        return self is not TickOutcome.ONLINE_SUCCESS


@dataclass(frozen=True)
class DisplayState:
    """Everything the UI needs for one tick."""
    status: StatusMessage
    outcome: TickOutcome
    weather: Optional[WeatherSnapshot] = None
    place: Optional[PlaceInfo] = None
    error: Optional[str] = None  # why a fresh fetch did not happen


class DisplayBase(ABC):
    """Abstract output for the refresh loop."""

    @abstractmethod
    def show_progress(self) -> None:
        pass

    @abstractmethod
    def hide_progress(self) -> None:
        pass

    @abstractmethod
    def render(self, state: DisplayState) -> None:
        pass


def format_weather_lines(weather: WeatherSnapshot, units: str = "imperial") -> List[str]:
    """Text rows for a snapshot, top to bottom."""
    deg = TEMP_UNITS.get(units, "°")
    speed = SPEED_UNITS.get(units, "m/s")

    wind = f"Wind {weather.wind.speed:.1f} {speed} {weather.wind.direction}°"
    if weather.wind.gust is not None:
        wind += f" gust {weather.wind.gust:.1f}"

    if weather.precipitation.kind == PRECIP_SNOW:
        precip = f"Snow {weather.precipitation.amount:.1f} mm/h"
    elif weather.precipitation.kind == PRECIP_RAIN:
        precip = f"Rain {weather.precipitation.amount:.1f} mm/h"
    else:
        precip = f"Humidity {weather.humidity:.0f}%  Clouds {weather.cloud_cover}%"

    return [
        f"{weather.temperature:.0f}{deg}",
        f"{weather.title_description}  H {weather.temp_max:.0f}{deg} L {weather.temp_min:.0f}{deg}",
        f"Sunrise {weather.sunrise_local}  Sunset {weather.sunset_local}",
        wind,
        precip,
        f"Feels {weather.feels_like:.0f}{deg}  Vis {weather.visibility_miles:.1f} mi  "
        f"Pressure {weather.pressure_inhg:.2f} inHg",
    ]


class ConsoleDisplay(DisplayBase):
    """Writes each tick's state as plain text lines."""

    def __init__(self, stream: TextIO = sys.stdout, units: str = "imperial"):
        self.stream = stream
        self.units = units
        self.progress_visible = False

    def show_progress(self) -> None:
        self.progress_visible = True
        self.stream.write(UPDATING.text + "\n")
        self.stream.flush()
        logging.debug("Progress indicator shown")

    def hide_progress(self) -> None:
        self.progress_visible = False
        logging.debug("Progress indicator hidden")

    def render(self, state: DisplayState) -> None:
        lines = []
        if state.place is not None:
            lines.append(state.place.label())
        if state.weather is not None:
            lines.extend(format_weather_lines(state.weather, self.units))
        lines.append(state.status.text)
        self.stream.write("\n".join(lines) + "\n\n")
        self.stream.flush()
        logging.info(f"Display: {state.outcome.value} - {state.status.text}")


class RecordingDisplay(DisplayBase):
    """
    Fake display for testing - records every call in order.

    `events` holds ("show",), ("hide",) and ("render", DisplayState) tuples.
    """

    def __init__(self):
        self.events = []
        self.progress_visible = False

    def show_progress(self) -> None:
        self.progress_visible = True
        self.events.append(("show",))

    def hide_progress(self) -> None:
        self.progress_visible = False
        self.events.append(("hide",))

    def render(self, state: DisplayState) -> None:
        self.events.append(("render", state))

    @property
    def rendered(self) -> List[DisplayState]:
        return [event[1] for event in self.events if event[0] == "render"]

    @property
    def last(self) -> Optional[DisplayState]:
        rendered = self.rendered
        return rendered[-1] if rendered else None
