"""
Message extractor — upstream documents to candidate incoming transfers.

The indexers return different shapes for the same thing depending on API
version and message type. Each known shape has an explicit decoder; a
document that matches no known shape for its lookup kind yields no
candidates. Purely structural: no address comparison, no amount threshold.

Known shapes:
  transaction lookup
    - SINGLE_TRANSACTION: one transaction mapping with "in_msg"
      (tonapi v2 /blockchain/transactions/{id}, toncenter v2 list item)
    - TRANSACTION_LIST: {"transactions": [...]} (toncenter v3) or
      {"ok": true, "result": [...]} (toncenter v2)
  event lookup
    - EVENT_LIST: {"events": [...]} (tonapi v2 /accounts/{id}/events)
    - SINGLE_EVENT: one event mapping with "actions"
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from backend_spinpay.ledger.amounts import parse_amount
from backend_spinpay.ledger.models import DocumentKind, LookupKind, TransferRecord
from backend_spinpay.spinpay_logging import get_logger

logger = get_logger(__name__)

TON_TRANSFER_ACTION = "TonTransfer"
INTERNAL_MSG_TYPE = "int_msg"

# Value-carrying field names seen on inbound messages across API versions
_VALUE_KEYS = ("value", "amount")
_DESTINATION_KEYS = ("destination", "dst")
_SOURCE_KEYS = ("source", "src")
_TIME_KEYS = ("utime", "now")


class DocumentShape(str, Enum):
    SINGLE_TRANSACTION = "single_transaction"
    TRANSACTION_LIST = "transaction_list"
    EVENT_LIST = "event_list"
    SINGLE_EVENT = "single_event"
    UNKNOWN = "unknown"


def detect_shape(document: Any, kind: LookupKind) -> DocumentShape:
    """Classify a document among the shapes valid for this lookup kind."""
    if not isinstance(document, Mapping):
        return DocumentShape.UNKNOWN
    if kind is LookupKind.TRANSACTION:
        if isinstance(document.get("transactions"), list):
            return DocumentShape.TRANSACTION_LIST
        if document.get("ok") is True and isinstance(document.get("result"), list):
            return DocumentShape.TRANSACTION_LIST
        if isinstance(document.get("in_msg"), Mapping):
            return DocumentShape.SINGLE_TRANSACTION
        return DocumentShape.UNKNOWN
    if isinstance(document.get("events"), list):
        return DocumentShape.EVENT_LIST
    if isinstance(document.get("actions"), list):
        return DocumentShape.SINGLE_EVENT
    return DocumentShape.UNKNOWN


# -----------------------------------------------------------------------------
# Field helpers
# -----------------------------------------------------------------------------


def _address_of(value: Any) -> str | None:
    """Address from either a bare string or an {"address": ...} mapping."""
    if isinstance(value, Mapping):
        value = value.get("address")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _first_address(obj: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        addr = _address_of(obj.get(key))
        if addr is not None:
            return addr
    return None


def _timestamp_of(value: Any) -> datetime | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return None
    if seconds <= 0:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _amount_of(obj: Mapping[str, Any], keys: tuple[str, ...]) -> int | None:
    """Amount from the first present key; None if absent or negative."""
    for key in keys:
        if key in obj and obj[key] is not None:
            amount = parse_amount(obj[key])
            return amount if amount >= 0 else None
    return None


def _transaction_reference(tx: Mapping[str, Any]) -> str | None:
    ref = tx.get("hash")
    if isinstance(ref, str) and ref:
        return ref
    tx_id = tx.get("transaction_id")
    if isinstance(tx_id, Mapping) and isinstance(tx_id.get("hash"), str):
        return tx_id["hash"]
    return None


def _transaction_failed(tx: Mapping[str, Any]) -> bool:
    if tx.get("success") is False or tx.get("aborted") is True:
        return True
    description = tx.get("description")
    return isinstance(description, Mapping) and description.get("aborted") is True


# -----------------------------------------------------------------------------
# Decoders
# -----------------------------------------------------------------------------


def _decode_inbound_message(tx: Mapping[str, Any]) -> TransferRecord | None:
    """
    Incoming value transfer of one transaction, or None.

    Only internal messages carry value: an inbound message without a source
    is external (a wallet's signed request) and is never a candidate. A
    bounced message is money coming back, not a payment. Messages that call
    a contract (op code, decoded body) are read the same way as plain
    transfers; the attached value is what was paid.
    """
    if _transaction_failed(tx):
        logger.debug("extract_skip_failed_transaction", reference=_transaction_reference(tx))
        return None
    msg = tx.get("in_msg")
    if not isinstance(msg, Mapping):
        return None
    msg_type = msg.get("msg_type")
    if msg_type is not None and msg_type != INTERNAL_MSG_TYPE:
        return None
    if msg.get("bounced") is True:
        return None
    sender = _first_address(msg, _SOURCE_KEYS)
    if sender is None:
        return None
    recipient = _first_address(msg, _DESTINATION_KEYS)
    amount = _amount_of(msg, _VALUE_KEYS)
    if recipient is None or amount is None:
        logger.debug("extract_skip_unrecognized_message", reference=_transaction_reference(tx))
        return None

    timestamp = None
    for key in _TIME_KEYS:
        timestamp = _timestamp_of(tx.get(key))
        if timestamp is not None:
            break
    return TransferRecord(
        recipient=recipient,
        amount=amount,
        source_document_kind=DocumentKind.TRANSACTION,
        timestamp=timestamp,
        sender=sender,
        reference=_transaction_reference(tx),
    )


def _decode_single_transaction(document: Mapping[str, Any]) -> list[TransferRecord]:
    record = _decode_inbound_message(document)
    return [record] if record is not None else []


def _decode_transaction_list(document: Mapping[str, Any]) -> list[TransferRecord]:
    items = document.get("transactions")
    if not isinstance(items, list):
        items = document.get("result") or []
    out: list[TransferRecord] = []
    for tx in items:
        if isinstance(tx, Mapping):
            out.extend(_decode_single_transaction(tx))
    return out


def _decode_ton_transfer_action(
    action: Mapping[str, Any],
    event: Mapping[str, Any],
) -> TransferRecord | None:
    if action.get("type") != TON_TRANSFER_ACTION:
        return None
    status = action.get("status")
    if status is not None and status != "ok":
        return None
    payload = action.get(TON_TRANSFER_ACTION)
    if not isinstance(payload, Mapping):
        return None
    recipient = _address_of(payload.get("recipient"))
    amount = _amount_of(payload, ("amount",))
    if recipient is None or amount is None:
        return None
    event_id = event.get("event_id")
    return TransferRecord(
        recipient=recipient,
        amount=amount,
        source_document_kind=DocumentKind.EVENT,
        timestamp=_timestamp_of(event.get("timestamp")),
        sender=_address_of(payload.get("sender")),
        reference=event_id if isinstance(event_id, str) else None,
    )


def _decode_single_event(event: Mapping[str, Any]) -> list[TransferRecord]:
    out: list[TransferRecord] = []
    for action in event.get("actions") or []:
        if not isinstance(action, Mapping):
            continue
        record = _decode_ton_transfer_action(action, event)
        if record is not None:
            out.append(record)
    return out


def _decode_event_list(document: Mapping[str, Any]) -> list[TransferRecord]:
    out: list[TransferRecord] = []
    for event in document.get("events") or []:
        if isinstance(event, Mapping):
            out.extend(_decode_single_event(event))
    return out


_DECODERS: dict[DocumentShape, Callable[[Mapping[str, Any]], list[TransferRecord]]] = {
    DocumentShape.SINGLE_TRANSACTION: _decode_single_transaction,
    DocumentShape.TRANSACTION_LIST: _decode_transaction_list,
    DocumentShape.EVENT_LIST: _decode_event_list,
    DocumentShape.SINGLE_EVENT: _decode_single_event,
}


def extract_transfers(document: Any, kind: LookupKind) -> list[TransferRecord]:
    """
    Return candidate incoming transfers contained in document, in document order.

    Unknown shapes and malformed entries yield no candidates; this never raises
    for document content.
    """
    shape = detect_shape(document, kind)
    decoder = _DECODERS.get(shape)
    if decoder is None:
        logger.debug("extract_unknown_shape", lookup_kind=kind.value)
        return []
    records = decoder(document)
    logger.debug(
        "extract_done",
        lookup_kind=kind.value,
        shape=shape.value,
        candidate_count=len(records),
    )
    return records
