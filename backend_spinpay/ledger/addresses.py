"""
TON address normalizer.

An account appears in two surface encodings:

- raw: "<workchain>:<account hash as 64 hex chars>", e.g. "0:83df...";
- user-friendly: 48 base64 (or URL-safe base64) characters encoding 36 bytes:
  1 tag byte (0x11 bounceable, 0x51 non-bounceable, | 0x80 for test-only),
  1 signed workchain byte, 32 account-hash bytes, and a CRC16-XMODEM
  checksum of the first 34 bytes (big-endian).

canonicalize() decodes either form, validates it and re-encodes to the
lowercase raw form, which is the only form compared anywhere else.
"""

from __future__ import annotations

import base64
import binascii
import re

from backend_spinpay.core.exceptions import AddressFormatError
from backend_spinpay.ledger.models import CanonicalAddress

TAG_BOUNCEABLE = 0x11
TAG_NON_BOUNCEABLE = 0x51
TAG_TEST_ONLY = 0x80

FRIENDLY_LENGTH = 48
FRIENDLY_BYTES = 36

_RAW_RE = re.compile(r"^(-?[0-9]{1,3}):([0-9a-fA-F]{64})$")
_URL_SAFE_TO_STD = str.maketrans("-_", "+/")
_STD_TO_URL_SAFE = str.maketrans("+/", "-_")


def _crc16(data: bytes) -> int:
    """CRC16-XMODEM (poly 0x1021, init 0) as used by TON address checksums."""
    return binascii.crc_hqx(data, 0)


def _parse_raw(address: str) -> tuple[int, bytes]:
    m = _RAW_RE.match(address)
    if m is None:
        raise AddressFormatError(f"Not a raw TON address: {address!r}")
    workchain = int(m.group(1))
    if not -128 <= workchain <= 127:
        raise AddressFormatError(f"Workchain out of range: {workchain}")
    return workchain, bytes.fromhex(m.group(2))


def _parse_friendly(address: str) -> tuple[int, bytes]:
    if len(address) != FRIENDLY_LENGTH:
        raise AddressFormatError(
            f"User-friendly address must be {FRIENDLY_LENGTH} chars, got {len(address)}"
        )
    try:
        raw = base64.b64decode(address.translate(_URL_SAFE_TO_STD), validate=True)
    except (binascii.Error, ValueError) as e:
        raise AddressFormatError(f"Address is not valid base64: {e}") from e
    if len(raw) != FRIENDLY_BYTES:
        raise AddressFormatError(f"Decoded address must be {FRIENDLY_BYTES} bytes, got {len(raw)}")

    tag = raw[0] & ~TAG_TEST_ONLY & 0xFF
    if tag not in (TAG_BOUNCEABLE, TAG_NON_BOUNCEABLE):
        raise AddressFormatError(f"Unknown address tag 0x{raw[0]:02x}")
    expected_crc = int.from_bytes(raw[34:36], "big")
    if _crc16(raw[:34]) != expected_crc:
        raise AddressFormatError("Address checksum mismatch")

    workchain = raw[1] - 256 if raw[1] >= 128 else raw[1]
    return workchain, raw[2:34]


def decode_address(address: str) -> tuple[int, bytes]:
    """Return (workchain, 32-byte account hash) for a raw or user-friendly address."""
    if not isinstance(address, str):
        raise AddressFormatError(f"Address must be a string, got {type(address).__name__}")
    address = address.strip()
    if not address:
        raise AddressFormatError("Address must be non-empty")
    if ":" in address:
        return _parse_raw(address)
    return _parse_friendly(address)


def canonicalize(address: str) -> CanonicalAddress:
    """
    Return the canonical raw form "<wc>:<hex>" for any supported encoding.

    Raises AddressFormatError for malformed input; never guesses.
    Canonicalizing a canonical address returns it unchanged.
    """
    workchain, account_hash = decode_address(address)
    return CanonicalAddress(f"{workchain}:{account_hash.hex()}")


def try_canonicalize(address: str | None) -> CanonicalAddress | None:
    """canonicalize() or None for missing/malformed input."""
    if address is None:
        return None
    try:
        return canonicalize(address)
    except AddressFormatError:
        return None


def same_account(a: str | None, b: str | None) -> bool:
    """True iff both addresses are valid and refer to the same account."""
    ca = try_canonicalize(a)
    return ca is not None and ca == try_canonicalize(b)


def to_user_friendly(
    address: str,
    *,
    bounceable: bool = True,
    testnet: bool = False,
    url_safe: bool = True,
) -> str:
    """Encode any supported address form as a 48-char user-friendly address."""
    workchain, account_hash = decode_address(address)
    tag = TAG_BOUNCEABLE if bounceable else TAG_NON_BOUNCEABLE
    if testnet:
        tag |= TAG_TEST_ONLY
    body = bytes([tag, workchain & 0xFF]) + account_hash
    encoded = base64.b64encode(body + _crc16(body).to_bytes(2, "big")).decode("ascii")
    return encoded.translate(_STD_TO_URL_SAFE) if url_safe else encoded
