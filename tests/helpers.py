"""
Shared test data: addresses, upstream documents, and a verifier wired to httpx.MockTransport.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx

from backend_spinpay.config.settings import (
    UpstreamEndpoint,
    VerifierConfig,
    default_event_endpoints,
    default_transaction_endpoints,
)
from backend_spinpay.ledger.addresses import to_user_friendly
from backend_spinpay.verification import PaymentVerifier

TONAPI = "https://tonapi.test"
TONCENTER = "https://toncenter.test"

RECEIVER_RAW = "0:" + "ab" * 32
SENDER_RAW = "0:" + "cd" * 32
OTHER_RAW = "0:" + "ef" * 32
MASTERCHAIN_RAW = "-1:" + "01" * 32

RECEIVER_UQ = to_user_friendly(RECEIVER_RAW, bounceable=False)
RECEIVER_EQ = to_user_friendly(RECEIVER_RAW, bounceable=True)
SENDER_UQ = to_user_friendly(SENDER_RAW, bounceable=False)

TX_HASH = "a1" * 32

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def unix(dt: datetime) -> int:
    return int(dt.timestamp())


def make_config(**overrides: Any) -> VerifierConfig:
    params: dict[str, Any] = {
        "transaction_endpoints": default_transaction_endpoints(TONAPI, TONCENTER),
        "event_endpoints": default_event_endpoints(TONAPI),
        "receiver_address": RECEIVER_UQ,
        "minimum_amount": 0,
        "indexing_lag_delay_sec": 0.0,
        "recency_window_sec": 600.0,
        "event_page_size": 20,
        "request_timeout_sec": 2.0,
        "poll_timeout_sec": 5.0,
    }
    params.update(overrides)
    return VerifierConfig(**params)


def single_endpoint(name: str, url_template: str) -> tuple[UpstreamEndpoint, ...]:
    return (UpstreamEndpoint(name=name, url_template=url_template),)


class RecordingSleep:
    """Stands in for asyncio.sleep; records requested delays without waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


def make_verifier(
    handler: Callable[[httpx.Request], httpx.Response],
    config: VerifierConfig | None = None,
    sleep: RecordingSleep | None = None,
) -> PaymentVerifier:
    transport = httpx.MockTransport(handler)
    return PaymentVerifier(
        config or make_config(),
        http_client_factory=lambda: httpx.AsyncClient(transport=transport),
        sleep=sleep or RecordingSleep(),
        clock=lambda: NOW,
    )


def json_response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode(), headers={"Content-Type": "application/json"})


# -----------------------------------------------------------------------------
# Upstream documents
# -----------------------------------------------------------------------------


def tonapi_transaction(
    destination: str = RECEIVER_RAW,
    value: Any = 150,
    source: str | None = SENDER_RAW,
    *,
    tx_hash: str = TX_HASH,
    utime: int | None = None,
    success: bool = True,
    msg_type: str = "int_msg",
    bounced: bool = False,
    **in_msg_extra: Any,
) -> dict[str, Any]:
    in_msg: dict[str, Any] = {
        "msg_type": msg_type,
        "value": value,
        "bounced": bounced,
        "destination": {"address": destination, "is_scam": False},
    }
    if source is not None:
        in_msg["source"] = {"address": source, "is_scam": False}
    in_msg.update(in_msg_extra)
    return {
        "hash": tx_hash,
        "lt": 47000000000001,
        "account": {"address": destination},
        "success": success,
        "aborted": not success,
        "utime": utime if utime is not None else unix(NOW - timedelta(minutes=1)),
        "in_msg": in_msg,
        "out_msgs": [],
    }


def toncenter_v3_transactions(
    destination: str = RECEIVER_RAW,
    value: Any = "150",
    source: str | None = SENDER_RAW,
) -> dict[str, Any]:
    return {
        "transactions": [
            {
                "account": destination,
                "hash": "oaGhoaGhoaGhoaGhoaGhoaGhoaGhoaGhoaGhoaGhoaE=",
                "now": unix(NOW - timedelta(minutes=2)),
                "description": {"aborted": False},
                "in_msg": {
                    "source": source,
                    "destination": destination,
                    "value": value,
                    "opcode": "0x00000000",
                    "bounced": False,
                },
            }
        ],
        "address_book": {},
    }


def ton_transfer_action(
    recipient: str = RECEIVER_RAW,
    amount: Any = 150,
    sender: str = SENDER_RAW,
    status: str = "ok",
) -> dict[str, Any]:
    return {
        "type": "TonTransfer",
        "status": status,
        "TonTransfer": {
            "sender": {"address": sender, "is_scam": False},
            "recipient": {"address": recipient, "is_scam": False},
            "amount": amount,
            "comment": "spins",
        },
    }


def tonapi_event(
    actions: list[dict[str, Any]],
    *,
    event_id: str = "e1" * 32,
    at: datetime | None = None,
) -> dict[str, Any]:
    return {
        "event_id": event_id,
        "account": {"address": SENDER_RAW},
        "timestamp": unix(at or NOW - timedelta(seconds=30)),
        "actions": actions,
        "is_scam": False,
        "lt": 47000000000002,
        "in_progress": False,
    }


def tonapi_events(*events: dict[str, Any]) -> dict[str, Any]:
    return {"events": list(events), "next_from": 0}
