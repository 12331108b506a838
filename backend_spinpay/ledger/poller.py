"""
Event poller — find a transfer in the sender's recent account events.

Used when the client submitted a signed message (BOC) instead of a
transaction hash: the transaction cannot be looked up directly, so the
poller waits for the indexer to catch up, then scans one bounded page of the
sender's most recent events. Best-effort: by default a single wait + fetch,
never an unbounded loop. Callers needing more certainty verify again later.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import httpx

from backend_spinpay.config.settings import VerifierConfig
from backend_spinpay.core.exceptions import UpstreamUnavailableError
from backend_spinpay.ledger.addresses import canonicalize
from backend_spinpay.ledger.extractor import extract_transfers
from backend_spinpay.ledger.models import LookupKind, TransferRecord
from backend_spinpay.ledger.upstream import fetch_first_success
from backend_spinpay.spinpay_logging import get_logger, short_address

logger = get_logger(__name__)

TransferPredicate = Callable[[TransferRecord], bool]


@dataclass(frozen=True)
class PollResult:
    """First record satisfying the predicate (or None) plus everything scanned."""

    matched: TransferRecord | None
    candidates: list[TransferRecord] = field(default_factory=list)


class EventPoller:
    """
    Scan a sender's event feed for a matching transfer.

    Args:
        client: Shared httpx.AsyncClient for this verification call.
        config: VerifierConfig (lag delay, page size, attempts, deadline, endpoints).
        log: Optional bound structlog logger.
        sleep: Awaitable sleep; injectable so tests do not wait.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: VerifierConfig,
        log: Any = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._config = config
        self._log = log or logger
        self._sleep = sleep

    async def poll_for_transfer(
        self,
        sender_address: str,
        predicate: TransferPredicate,
    ) -> PollResult:
        """
        Wait for indexing lag, fetch recent events, return the first match.

        The whole poll is bounded by poll_timeout_sec. Raises
        UpstreamUnavailableError only if no event page could be fetched.
        """
        address = canonicalize(sender_address)
        log = self._log.bind(sender=short_address(address, 12))
        scanned: list[TransferRecord] = []
        fetched = False
        last_error: UpstreamUnavailableError | None = None

        async def _attempts() -> TransferRecord | None:
            nonlocal scanned, fetched, last_error
            for attempt in range(self._config.max_poll_attempts):
                await self._sleep(self._config.indexing_lag_delay_sec)
                try:
                    _, document = await fetch_first_success(
                        self._client,
                        self._config.event_endpoints,
                        timeout_sec=self._config.request_timeout_sec,
                        lookup="events",
                        log=log,
                        address=quote(address, safe=":"),
                        limit=self._config.event_page_size,
                    )
                except UpstreamUnavailableError as e:
                    last_error = e
                    continue
                fetched = True
                # Each page is the newest window, so it supersedes the previous one
                scanned = extract_transfers(document, LookupKind.EVENT)
                log.info(
                    "poll_page_scanned",
                    attempt=attempt + 1,
                    candidate_count=len(scanned),
                )
                for record in scanned:
                    if predicate(record):
                        return record
            return None

        try:
            matched = await asyncio.wait_for(_attempts(), timeout=self._config.poll_timeout_sec)
        except asyncio.TimeoutError:
            log.warning("poll_deadline_elapsed", timeout_sec=self._config.poll_timeout_sec)
            matched = None

        if matched is None and not fetched:
            raise last_error or UpstreamUnavailableError("Event feed could not be fetched before the deadline")
        return PollResult(matched=matched, candidates=list(scanned))
