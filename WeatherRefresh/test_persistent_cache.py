"""Tests for the persistent cache."""
import json

from conftest import NOW_MS, make_snapshot
from persistent_cache import KEY_PLACE, KEY_UPDATE_TIME, KEY_WEATHER, PersistentCache


def test_empty_cache_restores_zero_state(tmp_path):
    cache = PersistentCache(tmp_path / "cache.json")

    state = cache.restore_state()

    assert state.last_weather is None
    assert state.last_place is None
    assert state.last_success_epoch_ms == 0
    assert state.offline_streak_ticks == 0


def test_snapshot_survives_restart(tmp_path, sample_weather, fort_worth):
    """A stored snapshot reloads field-for-field after a new process opens the file."""
    path = tmp_path / "cache.json"
    PersistentCache(path).store(sample_weather, fort_worth, NOW_MS)

    state = PersistentCache(path).restore_state()

    assert state.last_weather == sample_weather
    assert state.last_place == fort_worth
    assert state.last_success_epoch_ms == NOW_MS


def test_file_layout(tmp_path, sample_weather, fort_worth):
    path = tmp_path / "cache.json"
    PersistentCache(path).store(sample_weather, fort_worth, NOW_MS)

    data = json.loads(path.read_text())

    assert data[KEY_WEATHER]["temperature"] == 72.0
    assert data[KEY_PLACE] == [{"name": "Fort Worth", "country": "US", "state": "TX"}]
    assert data[KEY_UPDATE_TIME] == NOW_MS


def test_store_without_place_keeps_previous_place(tmp_path, sample_weather, fort_worth):
    path = tmp_path / "cache.json"
    cache = PersistentCache(path)
    cache.store(sample_weather, fort_worth, NOW_MS)

    cache.store(make_snapshot(temperature=50.0), None, NOW_MS + 1000)

    state = PersistentCache(path).restore_state()
    assert state.last_weather.temperature == 50.0
    assert state.last_place == fort_worth
    assert state.last_success_epoch_ms == NOW_MS + 1000


def test_corrupt_file_behaves_like_empty_cache(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{not json")

    state = PersistentCache(path).restore_state()

    assert state.last_weather is None
    assert state.last_success_epoch_ms == 0


def test_non_object_file_is_ignored(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("[1, 2, 3]")

    assert PersistentCache(path).get(KEY_WEATHER) is None


def test_unreadable_entries_are_discarded_individually(tmp_path, fort_worth):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps({
        KEY_WEATHER: {"temperature": "bogus"},
        KEY_PLACE: [fort_worth.to_dict()],
        KEY_UPDATE_TIME: "later",
    }))

    state = PersistentCache(path).restore_state()

    assert state.last_weather is None
    assert state.last_place == fort_worth
    assert state.last_success_epoch_ms == 0


def test_write_failure_is_not_fatal(tmp_path, sample_weather):
    """Saving into a path whose parent is a file logs and carries on."""
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    cache = PersistentCache(blocker / "cache.json")

    cache.store(sample_weather, None, NOW_MS)

    assert cache.load_weather() == sample_weather
    assert not (blocker / "cache.json").exists()


def test_creates_parent_directories(tmp_path, sample_weather):
    path = tmp_path / "nested" / "dir" / "cache.json"

    PersistentCache(path).store(sample_weather, None, NOW_MS)

    assert path.exists()
