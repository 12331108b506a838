"""
Verification decision — pure function from claim + candidates to a verdict.

No I/O, no clock access unless now is omitted. Candidates are judged in the
order they were extracted; the first match wins. When nothing matches, the
most specific near miss is reported so clients can tell "paid too little"
from "paid someone else" from "nothing there".
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from enum import Enum

from backend_spinpay.config.settings import VerifierConfig
from backend_spinpay.core.exceptions import AddressFormatError, InvalidClaimError
from backend_spinpay.ledger.addresses import canonicalize, same_account, try_canonicalize
from backend_spinpay.ledger.locator import normalize_transaction_id, same_transaction
from backend_spinpay.ledger.models import (
    DocumentKind,
    PaymentClaim,
    Reason,
    TransferRecord,
    VerificationResult,
)


class CandidateVerdict(str, Enum):
    MATCH = "match"
    OTHER_TRANSACTION = "other_transaction"
    RECEIVER_MISMATCH = "receiver_mismatch"
    OTHER_SENDER = "other_sender"
    STALE = "stale"
    AMOUNT_INSUFFICIENT = "amount_insufficient"


# Event timestamps may run slightly ahead of the local clock
MAX_CLOCK_SKEW_SEC = 60.0

# Higher rank = more specific explanation of a non-match
_NEAR_MISS_RANK: dict[CandidateVerdict, tuple[int, Reason]] = {
    CandidateVerdict.OTHER_TRANSACTION: (0, Reason.NOT_FOUND),
    CandidateVerdict.OTHER_SENDER: (0, Reason.NOT_FOUND),
    CandidateVerdict.RECEIVER_MISMATCH: (1, Reason.RECEIVER_MISMATCH),
    CandidateVerdict.STALE: (2, Reason.STALE),
    CandidateVerdict.AMOUNT_INSUFFICIENT: (3, Reason.AMOUNT_INSUFFICIENT),
}


def required_amount(claim: PaymentClaim, config: VerifierConfig) -> int:
    """Amount a transfer must reach: the claim's amount, never below the configured minimum."""
    return max(claim.claimed_amount, config.minimum_amount)


def validate_claim(claim: PaymentClaim, config: VerifierConfig) -> None:
    """
    Raise InvalidClaimError unless the claim is complete and well-formed.

    Needs a transaction id or a raw blob; a blob also needs sender and
    receiver. Addresses must decode; when a receiver is configured, the claim
    must name that same account. With require_sender_match every claim must
    name its sender.
    """
    amount = claim.claimed_amount
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidClaimError("claimed_amount must be a non-negative integer")
    if not claim.transaction_id and not claim.raw_transaction_blob:
        raise InvalidClaimError("claim needs transaction_id or raw_transaction_blob")
    if claim.raw_transaction_blob:
        if not claim.claimed_sender_address or not claim.claimed_receiver_address:
            raise InvalidClaimError("raw_transaction_blob requires sender and receiver addresses")
    if not claim.claimed_receiver_address:
        raise InvalidClaimError("claimed_receiver_address is required")
    if config.require_sender_match and not claim.claimed_sender_address:
        raise InvalidClaimError("claimed_sender_address is required")
    try:
        canonicalize(claim.claimed_receiver_address)
        if claim.claimed_sender_address:
            canonicalize(claim.claimed_sender_address)
    except AddressFormatError as e:
        raise InvalidClaimError(f"invalid address: {e}") from e
    if config.receiver_address and not same_account(
        claim.claimed_receiver_address, config.receiver_address
    ):
        raise InvalidClaimError("claimed_receiver_address is not the configured receiver")
    if claim.transaction_id:
        normalize_transaction_id(claim.transaction_id)


def is_fresh(record: TransferRecord, now: datetime, window_sec: float) -> bool:
    """
    Event records only count inside the trailing recency window.

    No timestamp means not fresh; neither is a timestamp further ahead of
    now than MAX_CLOCK_SKEW_SEC.
    """
    if record.timestamp is None:
        return False
    age = now - record.timestamp
    return -timedelta(seconds=MAX_CLOCK_SKEW_SEC) <= age <= timedelta(seconds=window_sec)


def evaluate_candidate(
    claim: PaymentClaim,
    record: TransferRecord,
    *,
    config: VerifierConfig,
    now: datetime,
) -> CandidateVerdict:
    """
    Judge one candidate against a validated claim.

    Checks run in order: transaction identity (records read from a
    transaction lookup must carry the claimed hash), receiver, sender
    (whenever the claim names one; a record without a sender never passes),
    freshness (event records only), amount.
    """
    if (
        claim.transaction_id
        and record.source_document_kind is DocumentKind.TRANSACTION
        and not same_transaction(record.reference, claim.transaction_id)
    ):
        return CandidateVerdict.OTHER_TRANSACTION
    recipient = try_canonicalize(record.recipient)
    if recipient is None or recipient != try_canonicalize(claim.claimed_receiver_address):
        return CandidateVerdict.RECEIVER_MISMATCH
    if claim.claimed_sender_address and not same_account(record.sender, claim.claimed_sender_address):
        return CandidateVerdict.OTHER_SENDER
    if record.source_document_kind is DocumentKind.EVENT and not is_fresh(
        record, now, config.recency_window_sec
    ):
        return CandidateVerdict.STALE
    if record.amount < required_amount(claim, config):
        return CandidateVerdict.AMOUNT_INSUFFICIENT
    return CandidateVerdict.MATCH


def decide(
    claim: PaymentClaim,
    candidates: Iterable[TransferRecord],
    *,
    config: VerifierConfig,
    now: datetime | None = None,
) -> VerificationResult:
    """
    Return the verdict for claim given extracted candidates.

    Invalid claims give INVALID_CLAIM. Otherwise the first matching
    candidate verifies the claim; with no match the reason is the best near
    miss (AMOUNT_INSUFFICIENT > STALE > RECEIVER_MISMATCH > NOT_FOUND).
    """
    try:
        validate_claim(claim, config)
    except InvalidClaimError:
        return VerificationResult.failure(Reason.INVALID_CLAIM, claim.transaction_id)

    now = now or datetime.now(timezone.utc)
    best_rank = -1
    reason = Reason.NOT_FOUND
    for record in candidates:
        verdict = evaluate_candidate(claim, record, config=config, now=now)
        if verdict is CandidateVerdict.MATCH:
            return VerificationResult.success(record, claim.transaction_id)
        rank, near_miss = _NEAR_MISS_RANK[verdict]
        if rank > best_rank:
            best_rank, reason = rank, near_miss
    return VerificationResult.failure(reason, claim.transaction_id)
