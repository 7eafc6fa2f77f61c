"""Location-aware weather refresh loop for the terminal."""
import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Tuple

from dotenv import load_dotenv

from connectivity import SocketConnectivityProbe
from display import ConsoleDisplay
from fetch_pipeline import FetchPipeline
from location_source import StaticLocationSource
from openweather_provider import DEFAULT_BASE_URL, OpenWeatherGeocoder, OpenWeatherProvider
from persistent_cache import PersistentCache
from update_scheduler import UpdateScheduler
from weather_data import Position

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "weather-refresh.log")
DEFAULT_CACHE_FILE = os.path.join(BASE_DIR, "weather-cache.json")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Location-aware weather refresh")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--cache-file", default=DEFAULT_CACHE_FILE)
    parser.add_argument("--units", choices=["metric", "imperial", "standard"], default="imperial")
    parser.add_argument("--refresh", type=float, default=15.0, help="Seconds between refreshes")
    parser.add_argument("--grace", type=float, default=2.0, help="Seconds the progress indicator stays up")
    parser.add_argument("--timeout", type=int, default=10, help="HTTP timeout in seconds")
    parser.add_argument("--fetch-timeout", type=float, default=20.0, help="Upper bound for one update attempt")
    parser.add_argument("--probe-host", default="1.1.1.1", help="Host used for the connectivity check")
    parser.add_argument("--probe-port", type=int, default=53)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: str, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file)
        ]
    )


def load_config() -> Tuple[str, Position, str, str]:
    load_dotenv()
    api_key = os.getenv("WEATHER_API_KEY")
    lat = os.getenv("WEATHER_LAT")
    lon = os.getenv("WEATHER_LON")
    lang = os.getenv("WEATHER_LANG", "en")
    base_url = os.getenv("WEATHER_BASE_URL", DEFAULT_BASE_URL)

    if not api_key:
        raise SystemExit("Missing WEATHER_API_KEY in environment")
    if not lat or not lon:
        raise SystemExit("Missing WEATHER_LAT/WEATHER_LON in environment")

    try:
        position = Position(latitude=float(lat), longitude=float(lon))
    except ValueError as exc:
        raise SystemExit(f"Invalid coordinates: {exc}") from exc

    if not -90 <= position.latitude <= 90 or not -180 <= position.longitude <= 180:
        raise SystemExit(f"Coordinates out of range: {position.latitude}, {position.longitude}")

    logging.info("Configuration loaded: lat=%s lon=%s lang=%s", position.latitude, position.longitude, lang)
    return api_key, position, lang, base_url


def build_scheduler(
    api_key: str,
    position: Position,
    lang: str,
    base_url: str,
    args: argparse.Namespace,
) -> UpdateScheduler:
    pipeline = FetchPipeline(
        location_source=StaticLocationSource(position),
        weather_provider=OpenWeatherProvider(
            api_key=api_key,
            units=args.units,
            lang=lang,
            timeout=args.timeout,
            base_url=base_url,
        ),
        geocoder=OpenWeatherGeocoder(api_key=api_key, timeout=args.timeout, base_url=base_url),
        timeout_seconds=args.fetch_timeout,
    )
    scheduler = UpdateScheduler(
        pipeline=pipeline,
        connectivity=SocketConnectivityProbe(host=args.probe_host, port=args.probe_port),
        cache=PersistentCache(args.cache_file),
        display=ConsoleDisplay(units=args.units),
        tick_interval_seconds=max(args.refresh, 1.0),
        grace_period_seconds=max(args.grace, 0.0),
    )
    logging.info("Scheduler ready (cache=%s)", args.cache_file)
    return scheduler


async def run(scheduler: UpdateScheduler) -> None:
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, _on_signal, scheduler, signum)
        except NotImplementedError:  # pragma: no cover - Windows event loops
            signal.signal(signum, lambda s, _f: loop.call_soon_threadsafe(_on_signal, scheduler, s))
    await scheduler.run()


def _on_signal(scheduler: UpdateScheduler, signum) -> None:
    logging.info("Received signal %s, shutting down", signum)
    scheduler.stop()


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    api_key, position, lang, base_url = load_config()
    scheduler = build_scheduler(api_key, position, lang, base_url, args)

    try:
        asyncio.run(run(scheduler))
    except KeyboardInterrupt:
        logging.info("Stopping refresh loop")
    finally:
        logging.info("Refresh loop exited")


if __name__ == "__main__":
    main()
