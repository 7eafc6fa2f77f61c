"""Location source contract and the cancellation token threaded through a fetch."""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from weather_data import Position
from weather_provider import FetchCanceledError


class CancelToken:
    """
    One-shot cancellation signal for a single update attempt.

    The scheduler creates one per tick and keeps it so that `stop()` or the
    next tick can cancel whatever the attempt is waiting on.
    """

    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run `callback` on cancel (immediately if already cancelled)."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise FetchCanceledError("Update attempt was canceled")


class LocationSource(ABC):
    """Device location provider boundary."""

    @abstractmethod
    async def get_current_position(self, cancel_token: CancelToken) -> Optional[Position]:
        """
        Resolve the current position once.

        Returns:
            Position, or None when the device explicitly has no location

        Raises:
            FetchCanceledError: If the token is canceled before a fix arrives
        """
        pass


class StaticLocationSource(LocationSource):
    """Always reports the configured coordinates (devices without a location sensor)."""

    def __init__(self, position: Optional[Position]):
        self.position = position

    async def get_current_position(self, cancel_token: CancelToken) -> Optional[Position]:
        cancel_token.raise_if_cancelled()
        logging.debug(f"Static location: {self.position}")
        return self.position


class CallbackLocationSource(LocationSource):
    """
    Adapts a callback-style location client to the awaitable contract.

    `request` is called with (on_result, token) and must eventually invoke
    `on_result(position_or_none)`; cancelling the token abandons the wait.
    """

    def __init__(self, request: Callable[[Callable[[Optional[Position]], None], CancelToken], None]):
        self._request = request

    async def get_current_position(self, cancel_token: CancelToken) -> Optional[Position]:
        cancel_token.raise_if_cancelled()
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[Optional[Position]]" = loop.create_future()

        def on_result(position: Optional[Position]) -> None:
            if not future.done():
                loop.call_soon_threadsafe(_resolve, position)

        def _resolve(position: Optional[Position]) -> None:
            if not future.done():
                future.set_result(position)

        def on_cancel() -> None:
            if not future.done():
                future.set_exception(FetchCanceledError("Location request canceled"))

        cancel_token.add_callback(on_cancel)
        self._request(on_result, cancel_token)
        return await future
