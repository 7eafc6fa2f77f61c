"""Repeating refresh loop with offline fallback and staleness tracking."""
import asyncio
import dataclasses
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

import staleness
from connectivity import ConnectivityProbe
from display import DisplayBase, DisplayState, TickOutcome
from fetch_pipeline import FetchPipeline, FetchResult
from location_source import CancelToken
from persistent_cache import PersistentCache
from weather_data import UpdateState
from weather_provider import FetchCanceledError, FetchError


class SchedulerPhase(Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    ONLINE_SUCCESS = "online_success"
    ONLINE_FAILURE = "online_failure"
    OFFLINE_FALLBACK = "offline_fallback"
    OFFLINE_NO_DATA = "offline_no_data"
    STOPPED = "stopped"


_PHASE_FOR_OUTCOME = {
    TickOutcome.ONLINE_SUCCESS: SchedulerPhase.ONLINE_SUCCESS,
    TickOutcome.ONLINE_FAILURE: SchedulerPhase.ONLINE_FAILURE,
    TickOutcome.OFFLINE_FALLBACK: SchedulerPhase.OFFLINE_FALLBACK,
    TickOutcome.OFFLINE_NO_DATA: SchedulerPhase.OFFLINE_NO_DATA,
}


def _now_ms() -> int:
    return int(time.time() * 1000)


class UpdateScheduler:
    """
    Drives the fixed-interval refresh cycle.

    Each tick shows the progress indicator for a grace period, checks
    connectivity, runs at most one fetch attempt, renders either fresh or
    cached data, waits the inter-tick delay and then commits the new
    UpdateState. A fetch failure while online falls back exactly like being
    offline. Canceled ticks commit nothing and render nothing.
    """

    def __init__(
        self,
        pipeline: FetchPipeline,
        connectivity: ConnectivityProbe,
        cache: PersistentCache,
        display: DisplayBase,
        tick_interval_seconds: float = 15.0,
        grace_period_seconds: float = 2.0,
        clock: Callable[[], int] = _now_ms,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the scheduler.

        Args:
            pipeline: Runs one fetch attempt
            connectivity: Polled once per tick
            cache: Restores state on start, written through on success
            display: Receives the progress indicator and per-tick state
            tick_interval_seconds: Delay after each tick
            grace_period_seconds: How long the progress indicator stays up
            clock: Epoch milliseconds source
            sleep: Awaitable delay (injectable for tests)
        """
        self.pipeline = pipeline
        self.connectivity = connectivity
        self.cache = cache
        self.display = display
        self.tick_interval_seconds = tick_interval_seconds
        self.grace_period_seconds = grace_period_seconds
        self._clock = clock
        self._sleep = sleep

        self._state = UpdateState()
        self._restored = False
        self._phase = SchedulerPhase.IDLE
        self._stopped = False
        self._task: Optional[asyncio.Task] = None
        self._cancel_token: Optional[CancelToken] = None

    @property
    def state(self) -> UpdateState:
        return self._state

    @property
    def phase(self) -> SchedulerPhase:
        return self._phase

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _ensure_restored(self) -> None:
        if self._restored:
            return
        self._state = self.cache.restore_state()
        self._restored = True

    def start(self) -> asyncio.Task:
        """Begin the repeating cycle on the running event loop."""
        if self.running and not self._stopped:
            return self._task
        self._ensure_restored()
        self._stopped = False
        self._task = asyncio.get_running_loop().create_task(self._run_loop())
        logging.info(
            f"Update loop started (interval={self.tick_interval_seconds}s, "
            f"grace={self.grace_period_seconds}s)"
        )
        return self._task

    def stop(self) -> None:
        """Cancel the cycle and any in-flight fetch. Safe to call repeatedly."""
        if self._stopped:
            return
        self._stopped = True
        if self._cancel_token is not None:
            self._cancel_token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logging.info("Update loop stop requested")

    async def wait_closed(self) -> None:
        """Wait until the loop task has finished unwinding."""
        if self._task is not None:
            await asyncio.wait([self._task])

    async def run(self) -> None:
        """Start and block until `stop()` is called."""
        self.start()
        await self.wait_closed()

    def _is_current(self) -> bool:
        return self._task is asyncio.current_task()

    async def _run_loop(self) -> None:
        try:
            # A stopped task may still be unwinding after a restart; it must not
            # keep ticking or touch the new loop's bookkeeping.
            while not self._stopped and self._is_current():
                try:
                    await self.tick()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logging.exception(f"Unexpected error in update tick: {exc}")
                    await self._sleep(self.tick_interval_seconds)
        finally:
            if self._is_current():
                self._phase = SchedulerPhase.STOPPED
                self._cancel_token = None
            logging.info("Update loop stopped")

    async def tick(self) -> Optional[TickOutcome]:
        """
        Run one full cycle, delay included.

        Returns:
            The tick outcome, or None if the attempt was canceled
        """
        self._ensure_restored()
        if self._cancel_token is not None:
            self._cancel_token.cancel()
        token = CancelToken()
        self._cancel_token = token
        before = self._state

        self._phase = SchedulerPhase.IN_PROGRESS
        self.display.show_progress()
        try:
            await self._sleep(self.grace_period_seconds)
        finally:
            self.display.hide_progress()

        if await self._is_offline():
            display_state = self._fallback(before, TickOutcome.OFFLINE_FALLBACK, "offline")
            new_state = dataclasses.replace(before, cycle_generation=before.cycle_generation + 1)
        else:
            try:
                result = await self.pipeline.fetch_once(token)
            except FetchCanceledError:
                logging.info("Update attempt canceled, state untouched")
                # A superseding tick owns the phase now.
                if self._cancel_token is token:
                    self._phase = SchedulerPhase.IDLE
                return None
            except FetchError as e:
                logging.warning(f"Update failed ({type(e).__name__}): {e}")
                display_state = self._fallback(before, TickOutcome.ONLINE_FAILURE, str(e) or type(e).__name__)
                new_state = dataclasses.replace(before, cycle_generation=before.cycle_generation + 1)
            else:
                display_state, new_state = await self._success(before, result)

        self._phase = _PHASE_FOR_OUTCOME[display_state.outcome]
        try:
            self.display.render(display_state)
        except Exception as e:
            logging.exception(f"Display render failed, tick continues: {e}")

        await self._sleep(self.tick_interval_seconds)

        if display_state.outcome.is_fallback:
            streak = before.offline_streak_ticks + 1
        else:
            streak = 0
        self._state = dataclasses.replace(new_state, offline_streak_ticks=streak)
        logging.debug(
            f"Tick {self._state.cycle_generation} committed: outcome={display_state.outcome.value}, "
            f"streak={streak}"
        )
        self._phase = SchedulerPhase.IDLE
        return display_state.outcome

    async def _is_offline(self) -> bool:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.connectivity.is_offline)
        except Exception as e:
            logging.warning(f"Connectivity probe failed, assuming offline: {e}")
            return True

    async def _store(self, weather, place, update_time_ms: int) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.cache.store, weather, place, update_time_ms)
        except Exception as e:
            logging.error(f"Cache write failed, keeping in-memory state: {e}")

    async def _success(self, before: UpdateState, result: FetchResult):
        now = max(self._clock(), before.last_success_epoch_ms)
        weather = dataclasses.replace(result.weather, fetched_at_epoch_ms=now)
        place = result.place if result.place is not None else before.last_place

        await self._store(weather, result.place, now)

        logging.info(
            f"Weather updated: {weather.temperature}°, {weather.description}, "
            f"place={place.label() if place else 'unknown'}"
        )
        display_state = DisplayState(
            status=staleness.JUST_NOW,
            outcome=TickOutcome.ONLINE_SUCCESS,
            weather=weather,
            place=place,
            error=str(result.place_error) if result.place_error else None,
        )
        new_state = dataclasses.replace(
            before,
            last_weather=weather,
            last_place=place,
            last_success_epoch_ms=now,
            cycle_generation=before.cycle_generation + 1,
        )
        return display_state, new_state

    def _fallback(self, before: UpdateState, outcome: TickOutcome, reason: str) -> DisplayState:
        if before.last_weather is None:
            logging.warning(f"No cached weather to fall back on ({reason})")
            if outcome is TickOutcome.OFFLINE_FALLBACK:
                outcome = TickOutcome.OFFLINE_NO_DATA
            return DisplayState(
                status=staleness.FAILED_NO_DATA,
                outcome=outcome,
                place=before.last_place,
                error=reason,
            )
        status = staleness.classify(
            before.last_success_epoch_ms,
            self._clock(),
            before.offline_streak_ticks,
            from_cache=True,
        )
        logging.info(f"Showing cached weather ({reason}): {status.text}")
        return DisplayState(
            status=status,
            outcome=outcome,
            weather=before.last_weather,
            place=before.last_place,
            error=reason,
        )
