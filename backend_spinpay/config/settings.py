"""
Verifier settings.

VerifierConfig is the single structure injected into the engine at
construction: receiver, minimum amount, indexing-lag delay, recency window,
upstream endpoints and timeouts. get_settings() builds it from the
environment; tests build it directly.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field

from backend_spinpay.config.env import (
    env_bool,
    env_float,
    env_int,
    env_optional,
    get_toncenter_base_url,
    get_tonapi_base_url,
    load_spinpay_env,
)

DEFAULT_MIN_AMOUNT = 100  # nanotons
DEFAULT_INDEXING_LAG_SEC = 5.0
DEFAULT_RECENCY_WINDOW_SEC = 600.0
DEFAULT_EVENT_PAGE_SIZE = 20
DEFAULT_REQUEST_TIMEOUT_SEC = 10.0
DEFAULT_POLL_TIMEOUT_SEC = 30.0
MAX_EVENT_PAGE_SIZE = 100


@dataclass(frozen=True)
class UpstreamEndpoint:
    """
    One upstream API version.

    url_template is formatted with tx_id / tx_id_b64url (transaction lookups)
    or address / limit (event lookups).
    """

    name: str
    url_template: str
    headers: dict[str, str] = field(default_factory=dict)

    def url(self, **params: object) -> str:
        return self.url_template.format(**params)


@dataclass(frozen=True)
class VerifierConfig:
    """Configuration for one PaymentVerifier; immutable and shared across calls."""

    transaction_endpoints: tuple[UpstreamEndpoint, ...]
    event_endpoints: tuple[UpstreamEndpoint, ...]
    receiver_address: str | None = None
    minimum_amount: int = DEFAULT_MIN_AMOUNT
    indexing_lag_delay_sec: float = DEFAULT_INDEXING_LAG_SEC
    recency_window_sec: float = DEFAULT_RECENCY_WINDOW_SEC
    event_page_size: int = DEFAULT_EVENT_PAGE_SIZE
    request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC
    poll_timeout_sec: float = DEFAULT_POLL_TIMEOUT_SEC
    max_poll_attempts: int = 1
    require_sender_match: bool = False

    def __post_init__(self) -> None:
        if not self.transaction_endpoints:
            raise ValueError("transaction_endpoints must be non-empty")
        if not self.event_endpoints:
            raise ValueError("event_endpoints must be non-empty")
        if self.minimum_amount < 0:
            raise ValueError("minimum_amount must be >= 0")
        if self.indexing_lag_delay_sec < 0:
            raise ValueError("indexing_lag_delay_sec must be >= 0")
        if self.recency_window_sec <= 0:
            raise ValueError("recency_window_sec must be positive")
        if not (1 <= self.event_page_size <= MAX_EVENT_PAGE_SIZE):
            raise ValueError(f"event_page_size must be between 1 and {MAX_EVENT_PAGE_SIZE}")
        if self.request_timeout_sec <= 0 or self.poll_timeout_sec <= 0:
            raise ValueError("timeouts must be positive")
        if self.max_poll_attempts < 1:
            raise ValueError("max_poll_attempts must be >= 1")
        if self.receiver_address is not None:
            from backend_spinpay.ledger.addresses import canonicalize

            canonicalize(self.receiver_address)


def default_transaction_endpoints(
    tonapi_url: str,
    toncenter_url: str,
    tonapi_key: str | None = None,
    toncenter_key: str | None = None,
) -> tuple[UpstreamEndpoint, ...]:
    """Transaction-by-hash endpoints, newest API first."""
    return (
        UpstreamEndpoint(
            name="tonapi_v2",
            url_template=tonapi_url + "/v2/blockchain/transactions/{tx_id}",
            headers={"Authorization": f"Bearer {tonapi_key}"} if tonapi_key else {},
        ),
        UpstreamEndpoint(
            name="toncenter_v3",
            url_template=toncenter_url + "/api/v3/transactions?hash={tx_id}&limit=1",
            headers={"X-API-Key": toncenter_key} if toncenter_key else {},
        ),
    )


def default_event_endpoints(
    tonapi_url: str,
    tonapi_key: str | None = None,
) -> tuple[UpstreamEndpoint, ...]:
    """Account event feed endpoints (newest-first feeds)."""
    return (
        UpstreamEndpoint(
            name="tonapi_v2_events",
            url_template=tonapi_url + "/v2/accounts/{address}/events?limit={limit}",
            headers={"Authorization": f"Bearer {tonapi_key}"} if tonapi_key else {},
        ),
    )


def load_config_from_env() -> VerifierConfig:
    """Build a VerifierConfig from SPINPAY_* / TONAPI_* / TONCENTER_* variables."""
    load_spinpay_env()
    tonapi_url = get_tonapi_base_url()
    toncenter_url = get_toncenter_base_url()
    tonapi_key = env_optional("TONAPI_KEY")
    toncenter_key = env_optional("TONCENTER_API_KEY")
    return VerifierConfig(
        transaction_endpoints=default_transaction_endpoints(
            tonapi_url, toncenter_url, tonapi_key, toncenter_key
        ),
        event_endpoints=default_event_endpoints(tonapi_url, tonapi_key),
        receiver_address=env_optional("SPINPAY_RECEIVER_ADDRESS"),
        minimum_amount=env_int("SPINPAY_MIN_AMOUNT", DEFAULT_MIN_AMOUNT),
        indexing_lag_delay_sec=env_float("SPINPAY_INDEXING_LAG_SEC", DEFAULT_INDEXING_LAG_SEC),
        recency_window_sec=env_float("SPINPAY_RECENCY_WINDOW_SEC", DEFAULT_RECENCY_WINDOW_SEC),
        event_page_size=env_int("SPINPAY_EVENT_PAGE_SIZE", DEFAULT_EVENT_PAGE_SIZE),
        request_timeout_sec=env_float("SPINPAY_REQUEST_TIMEOUT_SEC", DEFAULT_REQUEST_TIMEOUT_SEC),
        poll_timeout_sec=env_float("SPINPAY_POLL_TIMEOUT_SEC", DEFAULT_POLL_TIMEOUT_SEC),
        max_poll_attempts=env_int("SPINPAY_MAX_POLL_ATTEMPTS", 1),
        require_sender_match=env_bool("SPINPAY_REQUIRE_SENDER_MATCH"),
    )


@functools.lru_cache(maxsize=1)
def get_settings() -> VerifierConfig:
    """Return the process-wide configuration (built once from the environment)."""
    return load_config_from_env()
