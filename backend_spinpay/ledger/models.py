"""
Data models for payment claims, extracted transfers and verdicts.

All entities are request-scoped: built for one verification call and
discarded afterwards. Nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, NewType

# Raw "<workchain>:<64 hex>" form; only built by ledger.addresses.canonicalize
CanonicalAddress = NewType("CanonicalAddress", str)


class DocumentKind(str, Enum):
    """Which upstream document a TransferRecord was extracted from."""

    TRANSACTION = "transaction"
    EVENT = "event"


class LookupKind(str, Enum):
    """Which upstream request produced a document handed to the extractor."""

    TRANSACTION = "transaction_lookup"
    EVENT = "event_lookup"


class Reason(str, Enum):
    """Why a claim was not verified."""

    RECEIVER_MISMATCH = "ReceiverMismatch"
    AMOUNT_INSUFFICIENT = "AmountInsufficient"
    NOT_FOUND = "NotFound"
    STALE = "Stale"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"
    INVALID_CLAIM = "InvalidClaim"


@dataclass(frozen=True)
class PaymentClaim:
    """
    Caller-supplied assertion of a payment.

    At least one of transaction_id / raw_transaction_blob must be set; with a
    blob, both sender and receiver addresses are required. Amounts are in
    nanotons.
    """

    claimed_receiver_address: str
    claimed_amount: int
    transaction_id: str | None = None
    raw_transaction_blob: bytes | None = None
    claimed_sender_address: str | None = None


@dataclass(frozen=True)
class TransferRecord:
    """
    One candidate incoming value transfer found in an upstream document.

    recipient is the address exactly as the upstream reported it; comparison
    always goes through canonicalize().
    """

    recipient: str
    amount: int
    source_document_kind: DocumentKind
    timestamp: datetime | None = None
    sender: str | None = None
    reference: str | None = None
    """Transaction hash or event id the record came from."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipient": self.recipient,
            "sender": self.sender,
            "amount": str(self.amount),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "source_document_kind": self.source_document_kind.value,
            "reference": self.reference,
        }


@dataclass(frozen=True)
class VerificationResult:
    """Verdict for one claim; reason is None when verified."""

    verified: bool
    reason: Reason | None = None
    matched_record: TransferRecord | None = None
    transaction_id: str | None = None

    @classmethod
    def success(cls, record: TransferRecord, transaction_id: str | None = None) -> "VerificationResult":
        return cls(
            verified=True,
            matched_record=record,
            transaction_id=transaction_id or record.reference,
        )

    @classmethod
    def failure(cls, reason: Reason, transaction_id: str | None = None) -> "VerificationResult":
        return cls(verified=False, reason=reason, transaction_id=transaction_id)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict for the HTTP layer."""
        return {
            "verified": self.verified,
            "reason": self.reason.value if self.reason else None,
            "transaction_id": self.transaction_id,
            "matched": self.matched_record.to_dict() if self.matched_record else None,
        }
