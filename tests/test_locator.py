"""
Transaction locator: ordered endpoint fallback, each endpoint once, no backoff.
"""

from __future__ import annotations

import asyncio
import base64

import httpx
import pytest

from backend_spinpay.core.exceptions import InvalidClaimError, UpstreamUnavailableError
from backend_spinpay.ledger.locator import TransactionLocator, normalize_transaction_id
from tests.helpers import TX_HASH, json_response, make_config, tonapi_transaction, toncenter_v3_transactions


def _locate(handler, tx_id=TX_HASH, **config_overrides):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await TransactionLocator(client, make_config(**config_overrides)).locate_by_hash(tx_id)

    return asyncio.run(run())


def test_normalize_transaction_id_accepts_hex_and_base64():
    raw = bytes.fromhex(TX_HASH)
    assert normalize_transaction_id(TX_HASH.upper()) == TX_HASH
    assert normalize_transaction_id(base64.b64encode(raw).decode()) == TX_HASH
    assert normalize_transaction_id(base64.urlsafe_b64encode(raw).decode().rstrip("=")) == TX_HASH


def test_non_hash_ids_pass_through_as_opaque():
    assert normalize_transaction_id("abc123") == "abc123"
    assert normalize_transaction_id(" tx-42_v2 ") == "tx-42_v2"


@pytest.mark.parametrize("tx_id", ["", "   ", "has space", "a/b?c", "x" * 129, None])
def test_normalize_transaction_id_rejects_garbage(tx_id):
    with pytest.raises(InvalidClaimError):
        normalize_transaction_id(tx_id)


def test_first_endpoint_success_wins():
    calls = []

    def handler(request):
        calls.append(request.url.host)
        return json_response(tonapi_transaction())

    doc = _locate(handler)
    assert doc["hash"] == TX_HASH
    assert calls == ["tonapi.test"]


def test_falls_back_to_next_api_version():
    calls = []

    def handler(request):
        calls.append(str(request.url))
        if request.url.host == "tonapi.test":
            return json_response({"error": "entity not found"}, status_code=404)
        return json_response(toncenter_v3_transactions())

    doc = _locate(handler)
    assert "transactions" in doc
    assert calls == [
        f"https://tonapi.test/v2/blockchain/transactions/{TX_HASH}",
        f"https://toncenter.test/api/v3/transactions?hash={TX_HASH}&limit=1",
    ]


def test_timeouts_and_bad_json_fall_through():
    def handler(request):
        if request.url.host == "tonapi.test":
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, content=b"<html>not json</html>")

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        _locate(handler)
    errors = [(f.endpoint, f.error) for f in exc_info.value.failures]
    assert errors == [("tonapi_v2", "timeout"), ("toncenter_v3", "invalid JSON")]


def test_all_endpoints_failing_raises_upstream_unavailable():
    calls = []

    def handler(request):
        calls.append(request.url.host)
        return httpx.Response(502)

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        _locate(handler)
    # each endpoint exactly once
    assert calls == ["tonapi.test", "toncenter.test"]
    assert [f.error for f in exc_info.value.failures] == ["HTTP 502", "HTTP 502"]


def test_ok_false_envelope_counts_as_failure():
    def handler(request):
        if request.url.host == "tonapi.test":
            return json_response({"ok": False, "error": "rate limit"})
        return json_response(toncenter_v3_transactions())

    assert "transactions" in _locate(handler)


def test_endpoint_headers_are_sent():
    from backend_spinpay.config.settings import default_transaction_endpoints

    seen = {}

    def handler(request):
        seen[request.url.host] = dict(request.headers)
        return httpx.Response(500)

    endpoints = default_transaction_endpoints("https://tonapi.test", "https://toncenter.test", "tk", "ck")
    with pytest.raises(UpstreamUnavailableError):
        _locate(handler, transaction_endpoints=endpoints)
    assert seen["tonapi.test"]["authorization"] == "Bearer tk"
    assert seen["toncenter.test"]["x-api-key"] == "ck"
