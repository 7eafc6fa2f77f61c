"""Tests for configuration loading and wiring in main."""
import pytest
from unittest.mock import patch

import main
from connectivity import SocketConnectivityProbe
from weather_data import Position


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("WEATHER_API_KEY", "abc123")
    monkeypatch.setenv("WEATHER_LAT", "32.7555")
    monkeypatch.setenv("WEATHER_LON", "-97.3308")
    monkeypatch.delenv("WEATHER_LANG", raising=False)
    monkeypatch.delenv("WEATHER_BASE_URL", raising=False)
    return monkeypatch


def test_load_config(env):
    with patch("main.load_dotenv"):
        api_key, position, lang, base_url = main.load_config()

    assert api_key == "abc123"
    assert position == Position(latitude=32.7555, longitude=-97.3308)
    assert lang == "en"
    assert base_url == "https://api.openweathermap.org/"


def test_load_config_missing_key(env):
    env.delenv("WEATHER_API_KEY")

    with patch("main.load_dotenv"), pytest.raises(SystemExit) as exc_info:
        main.load_config()

    assert "WEATHER_API_KEY" in str(exc_info.value)


def test_load_config_invalid_coordinates(env):
    env.setenv("WEATHER_LAT", "north")

    with patch("main.load_dotenv"), pytest.raises(SystemExit) as exc_info:
        main.load_config()

    assert "Invalid coordinates" in str(exc_info.value)


def test_load_config_out_of_range(env):
    env.setenv("WEATHER_LAT", "123.0")

    with patch("main.load_dotenv"), pytest.raises(SystemExit) as exc_info:
        main.load_config()

    assert "out of range" in str(exc_info.value)


def test_parse_args_defaults():
    args = main.parse_args([])

    assert args.units == "imperial"
    assert args.refresh == 15.0
    assert args.grace == 2.0
    assert args.verbose is False


def test_build_scheduler_wiring(tmp_path):
    args = main.parse_args([
        "--cache-file", str(tmp_path / "cache.json"),
        "--refresh", "0.2",
        "--grace", "0.5",
        "--units", "metric",
        "--probe-host", "9.9.9.9",
    ])

    scheduler = main.build_scheduler("abc123", Position(1.0, 2.0), "de", "http://localhost/", args)

    assert scheduler.tick_interval_seconds == 1.0
    assert scheduler.grace_period_seconds == 0.5
    assert scheduler.pipeline.weather_provider.units == "metric"
    assert scheduler.pipeline.weather_provider.lang == "de"
    assert scheduler.pipeline.weather_provider.url == "http://localhost/data/2.5/weather"
    assert scheduler.pipeline.location_source.position == Position(1.0, 2.0)
    assert isinstance(scheduler.connectivity, SocketConnectivityProbe)
    assert scheduler.connectivity.host == "9.9.9.9"
    assert scheduler.cache.path == tmp_path / "cache.json"
