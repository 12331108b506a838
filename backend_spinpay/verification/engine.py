"""
Payment verification engine — orchestration for one claim.

verify() validates the claim, then takes one of two paths:

- transaction id given: TransactionLocator fetches the transaction by hash,
  the extractor reads its inbound transfer, decide() judges it;
- only a signed blob + sender given: EventPoller waits for indexing lag and
  scans the sender's recent events for a fresh matching transfer.

Every call is independent: one httpx.AsyncClient per call, closed before
returning, no shared mutable state. Business non-matches come back as
VerificationResult reasons; InvalidClaimError and UpstreamUnavailableError
propagate to the caller.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import httpx

from backend_spinpay.config.settings import VerifierConfig
from backend_spinpay.core.exceptions import InvalidClaimError, UpstreamUnavailableError
from backend_spinpay.ledger.extractor import extract_transfers
from backend_spinpay.ledger.locator import TransactionLocator, normalize_transaction_id
from backend_spinpay.ledger.models import LookupKind, PaymentClaim, TransferRecord, VerificationResult
from backend_spinpay.ledger.poller import EventPoller
from backend_spinpay.spinpay_logging import bind_claim, get_logger
from backend_spinpay.verification.decision import (
    CandidateVerdict,
    decide,
    evaluate_candidate,
    validate_claim,
)

logger = get_logger(__name__)

HttpClientFactory = Callable[[], httpx.AsyncClient]
Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PaymentVerifier:
    """
    Verify payment claims against the TON ledger.

    Args:
        config: Injected VerifierConfig.
        http_client_factory: Builds the per-call AsyncClient (tests pass one
            backed by httpx.MockTransport).
        log: Structured logger; defaults to this module's logger.
        sleep: Sleep used for the indexing-lag delay.
        clock: Returns the current UTC time for the recency window.
    """

    def __init__(
        self,
        config: VerifierConfig,
        *,
        http_client_factory: HttpClientFactory | None = None,
        log: Any = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Clock = _utc_now,
    ) -> None:
        self._config = config
        self._http_client_factory = http_client_factory or self._default_client
        self._log = log or logger
        self._sleep = sleep
        self._clock = clock

    @property
    def config(self) -> VerifierConfig:
        return self._config

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.request_timeout_sec),
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )

    async def verify(self, claim: PaymentClaim) -> VerificationResult:
        """
        Return the verdict for claim.

        Raises InvalidClaimError before any upstream call for malformed claims,
        UpstreamUnavailableError when every endpoint failed.
        """
        path = "transaction" if claim.transaction_id else "events"
        log = bind_claim(
            self._log,
            path=path,
            transaction_id=claim.transaction_id,
            receiver=claim.claimed_receiver_address,
            sender=claim.claimed_sender_address,
        )
        started = time.perf_counter()
        log.info(
            "claim_received",
            claimed_amount=claim.claimed_amount,
            has_blob=bool(claim.raw_transaction_blob),
        )
        try:
            validate_claim(claim, self._config)
        except InvalidClaimError as e:
            log.warning("claim_rejected", error=str(e))
            raise

        try:
            async with self._http_client_factory() as client:
                if claim.transaction_id:
                    result = await self._verify_by_hash(client, claim, log)
                else:
                    result = await self._verify_by_events(client, claim, log)
        except UpstreamUnavailableError as e:
            log.error(
                "verification_upstream_unavailable",
                failures=[f"{f.endpoint}: {f.error}" for f in e.failures],
            )
            raise

        log.info(
            "decision_reached",
            verified=result.verified,
            reason=result.reason.value if result.reason else None,
            transaction_id=result.transaction_id,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result

    async def _verify_by_hash(
        self,
        client: httpx.AsyncClient,
        claim: PaymentClaim,
        log: Any,
    ) -> VerificationResult:
        tx_hex = normalize_transaction_id(claim.transaction_id or "")
        locator = TransactionLocator(client, self._config, log)
        document = await locator.locate_by_hash(tx_hex)
        candidates = extract_transfers(document, LookupKind.TRANSACTION)
        result = decide(claim, candidates, config=self._config, now=self._clock())
        return dataclasses.replace(result, transaction_id=tx_hex)

    async def _verify_by_events(
        self,
        client: httpx.AsyncClient,
        claim: PaymentClaim,
        log: Any,
    ) -> VerificationResult:
        poller = EventPoller(client, self._config, log, sleep=self._sleep)

        def _matches(record: TransferRecord) -> bool:
            verdict = evaluate_candidate(claim, record, config=self._config, now=self._clock())
            return verdict is CandidateVerdict.MATCH

        poll = await poller.poll_for_transfer(claim.claimed_sender_address or "", _matches)
        if poll.matched is not None:
            return VerificationResult.success(poll.matched)
        return decide(claim, poll.candidates, config=self._config, now=self._clock())
