"""Tests for location sources and the cancel token."""
import asyncio
import threading

import pytest

from conftest import FORT_WORTH
from location_source import CallbackLocationSource, CancelToken, StaticLocationSource
from weather_provider import FetchCanceledError


def test_cancel_token_runs_callbacks_once():
    token = CancelToken()
    calls = []
    token.add_callback(lambda: calls.append("a"))

    token.cancel()
    token.cancel()

    assert token.cancelled is True
    assert calls == ["a"]


def test_cancel_token_late_callback_runs_immediately():
    token = CancelToken()
    token.cancel()
    calls = []

    token.add_callback(lambda: calls.append("late"))

    assert calls == ["late"]
    with pytest.raises(FetchCanceledError):
        token.raise_if_cancelled()


@pytest.mark.asyncio
async def test_static_source_returns_position():
    source = StaticLocationSource(FORT_WORTH)

    assert await source.get_current_position(CancelToken()) == FORT_WORTH


@pytest.mark.asyncio
async def test_static_source_without_position_returns_none():
    assert await StaticLocationSource(None).get_current_position(CancelToken()) is None


@pytest.mark.asyncio
async def test_static_source_honors_cancelled_token():
    token = CancelToken()
    token.cancel()

    with pytest.raises(FetchCanceledError):
        await StaticLocationSource(FORT_WORTH).get_current_position(token)


@pytest.mark.asyncio
async def test_callback_source_resolves_from_another_thread():
    def request(on_result, _token):
        threading.Timer(0.01, on_result, args=(FORT_WORTH,)).start()

    position = await CallbackLocationSource(request).get_current_position(CancelToken())

    assert position == FORT_WORTH


@pytest.mark.asyncio
async def test_callback_source_passes_through_no_location():
    def request(on_result, _token):
        on_result(None)

    assert await CallbackLocationSource(request).get_current_position(CancelToken()) is None


@pytest.mark.asyncio
async def test_callback_source_cancel_abandons_request():
    pending = []

    def request(on_result, token):
        pending.append(on_result)

    token = CancelToken()
    task = asyncio.ensure_future(CallbackLocationSource(request).get_current_position(token))
    await asyncio.sleep(0)
    token.cancel()

    with pytest.raises(FetchCanceledError):
        await task

    # A late fix after cancellation is ignored.
    pending[0](FORT_WORTH)
    await asyncio.sleep(0)
