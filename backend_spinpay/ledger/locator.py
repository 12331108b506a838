"""
Transaction locator — fetch a transaction document by hash.

Tries the configured transaction endpoints newest API first, once each,
and returns the first successful JSON document.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Any
from urllib.parse import quote

import httpx

from backend_spinpay.config.settings import VerifierConfig
from backend_spinpay.core.exceptions import InvalidClaimError
from backend_spinpay.ledger.upstream import fetch_first_success
from backend_spinpay.spinpay_logging import get_logger

logger = get_logger(__name__)

TX_HASH_BYTES = 32
_HEX_HASH_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_B64_HASH_RE = re.compile(r"^[A-Za-z0-9+/_-]{43}=?$")
# Indexer-specific ids that are not 32-byte hashes are passed through untouched
_OPAQUE_ID_RE = re.compile(r"^[A-Za-z0-9_.+=-]{1,128}$")


def _hash_from_base64(tx_id: str) -> bytes | None:
    padded = tx_id.rstrip("=") + "="
    try:
        raw = base64.urlsafe_b64decode(padded.replace("+", "-").replace("/", "_"))
    except (binascii.Error, ValueError):
        return None
    return raw if len(raw) == TX_HASH_BYTES else None


def normalize_transaction_id(tx_id: str) -> str:
    """
    Return a transaction hash as 64 lowercase hex chars.

    Hex and standard / URL-safe base64 hashes (explorers show both) are
    converted; other URL-safe tokens are treated as opaque ids and returned
    unchanged. Raises InvalidClaimError for empty or unsafe input.
    """
    if not isinstance(tx_id, str) or not tx_id.strip():
        raise InvalidClaimError("transaction_id must be a non-empty string")
    tx_id = tx_id.strip()
    if _HEX_HASH_RE.match(tx_id):
        return tx_id.lower()
    if _B64_HASH_RE.match(tx_id):
        raw = _hash_from_base64(tx_id)
        if raw is not None:
            return raw.hex()
    if _OPAQUE_ID_RE.match(tx_id):
        return tx_id
    raise InvalidClaimError(f"transaction_id contains unsupported characters: {tx_id[:16]!r}")


def same_transaction(reference: str | None, tx_id: str | None) -> bool:
    """True when reference and tx_id name the same transaction; hex and base64 forms compare equal."""
    if not reference or not tx_id:
        return False
    try:
        return normalize_transaction_id(reference) == normalize_transaction_id(tx_id)
    except InvalidClaimError:
        return False


class TransactionLocator:
    """Look up one transaction by hash across the configured API versions."""

    def __init__(self, client: httpx.AsyncClient, config: VerifierConfig, log: Any = None) -> None:
        self._client = client
        self._config = config
        self._log = log or logger

    async def locate_by_hash(self, tx_id: str) -> Any:
        """
        Return the parsed transaction document.

        Raises InvalidClaimError for an unusable id and
        UpstreamUnavailableError when every endpoint failed.
        """
        normalized = normalize_transaction_id(tx_id)
        if _HEX_HASH_RE.match(normalized):
            as_b64url = base64.urlsafe_b64encode(bytes.fromhex(normalized)).decode("ascii")
        else:
            as_b64url = normalized
        _, document = await fetch_first_success(
            self._client,
            self._config.transaction_endpoints,
            timeout_sec=self._config.request_timeout_sec,
            lookup="transaction",
            log=self._log.bind(tx_id=normalized[:16]),
            tx_id=quote(normalized, safe=""),
            tx_id_b64url=quote(as_b64url, safe=""),
        )
        return document
