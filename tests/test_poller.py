"""
Event poller: lag wait, single bounded page fetch, predicate scan, deadline.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from backend_spinpay.core.exceptions import UpstreamUnavailableError
from backend_spinpay.ledger.poller import EventPoller
from tests.helpers import (
    OTHER_RAW,
    RECEIVER_RAW,
    SENDER_RAW,
    SENDER_UQ,
    RecordingSleep,
    json_response,
    make_config,
    ton_transfer_action,
    tonapi_event,
    tonapi_events,
)


def _poll(handler, predicate, sleep=None, **config_overrides):
    sleep = sleep or RecordingSleep()

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            poller = EventPoller(client, make_config(**config_overrides), sleep=sleep)
            return await poller.poll_for_transfer(SENDER_UQ, predicate)

    return asyncio.run(run())


def _feed():
    return tonapi_events(
        tonapi_event([ton_transfer_action(recipient=OTHER_RAW, amount=500)], event_id="newest"),
        tonapi_event([ton_transfer_action(recipient=RECEIVER_RAW, amount=150)], event_id="older"),
    )


def test_waits_for_indexing_lag_then_fetches_one_bounded_page():
    sleep = RecordingSleep()
    urls = []

    def handler(request):
        urls.append(str(request.url))
        return json_response(_feed())

    result = _poll(
        handler,
        lambda r: r.recipient == RECEIVER_RAW,
        sleep=sleep,
        indexing_lag_delay_sec=4.0,
        event_page_size=10,
    )
    assert sleep.calls == [4.0]
    assert urls == [f"https://tonapi.test/v2/accounts/{SENDER_RAW}/events?limit=10"]
    assert result.matched is not None
    assert result.matched.reference == "older"
    assert len(result.candidates) == 2


def test_no_match_returns_scanned_candidates():
    result = _poll(lambda request: json_response(_feed()), lambda r: False)
    assert result.matched is None
    assert [r.reference for r in result.candidates] == ["newest", "older"]


def test_single_shot_by_default():
    calls = []

    def handler(request):
        calls.append(1)
        return json_response(tonapi_events())

    result = _poll(handler, lambda r: True)
    assert result.matched is None
    assert len(calls) == 1


def test_bounded_extra_attempts_pick_up_late_indexing():
    pages = [tonapi_events(), _feed()]

    def handler(request):
        return json_response(pages.pop(0))

    sleep = RecordingSleep()
    result = _poll(handler, lambda r: r.recipient == RECEIVER_RAW, sleep=sleep, max_poll_attempts=3, indexing_lag_delay_sec=1.0)
    assert result.matched is not None
    assert sleep.calls == [1.0, 1.0]


def test_feed_unavailable_raises():
    with pytest.raises(UpstreamUnavailableError):
        _poll(lambda request: httpx.Response(503), lambda r: True)


def test_deadline_bounds_the_whole_poll():
    async def slow_sleep(delay):
        await asyncio.sleep(10)

    with pytest.raises(UpstreamUnavailableError):
        _poll(lambda request: json_response(_feed()), lambda r: True, sleep=slow_sleep, poll_timeout_sec=0.05)
