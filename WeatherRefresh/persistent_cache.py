"""JSON-backed store for the last successful refresh, surviving restarts."""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from weather_data import PlaceInfo, UpdateState, WeatherSnapshot

KEY_WEATHER = "last_weather"
KEY_PLACE = "last_place"
KEY_UPDATE_TIME = "last_update_time"


class PersistentCache:
    """
    Key-value store for the last known weather, place and update time.

    Every read and write failure is logged and swallowed: a broken cache file
    must never stop the refresh loop, it just behaves like an empty cache.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._data: Dict[str, Any] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logging.warning(f"Could not load cache {self._path}: {e}")
            return {}
        if not isinstance(data, dict):
            logging.warning(f"Ignoring cache {self._path}: top level is not an object")
            return {}
        return data

    def _save(self) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            logging.error(f"Cache save failed for {self._path}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def load_weather(self) -> Optional[WeatherSnapshot]:
        raw = self.get(KEY_WEATHER)
        if raw is None:
            return None
        try:
            return WeatherSnapshot.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logging.warning(f"Discarding unreadable cached weather: {e}")
            return None

    def load_place(self) -> Optional[PlaceInfo]:
        raw: Optional[List[Dict[str, Any]]] = self.get(KEY_PLACE)
        if not raw:
            return None
        try:
            return PlaceInfo.from_dict(raw[0])
        except (KeyError, TypeError, IndexError) as e:
            logging.warning(f"Discarding unreadable cached place: {e}")
            return None

    def load_update_time(self) -> int:
        try:
            return int(self.get(KEY_UPDATE_TIME, 0) or 0)
        except (TypeError, ValueError):
            logging.warning("Discarding unreadable cached update time")
            return 0

    def restore_state(self) -> UpdateState:
        """Build the initial scheduler state from whatever the cache holds."""
        state = UpdateState(
            last_weather=self.load_weather(),
            last_place=self.load_place(),
            last_success_epoch_ms=self.load_update_time(),
        )
        logging.info(
            f"Restored cache from {self._path}: weather={'yes' if state.last_weather else 'no'}, "
            f"place={state.last_place.label() if state.last_place else 'none'}, "
            f"last_update={state.last_success_epoch_ms}"
        )
        return state

    def store(self, weather: WeatherSnapshot, place: Optional[PlaceInfo], update_time_ms: int) -> None:
        """Write through a successful refresh in a single save."""
        self._data[KEY_WEATHER] = weather.to_dict()
        if place is not None:
            self._data[KEY_PLACE] = [place.to_dict()]
        self._data[KEY_UPDATE_TIME] = int(update_time_ms)
        self._save()
        logging.debug(f"Cache written to {self._path} at {update_time_ms}")
