"""
Environment variable loading for SpinPay.

- SPINPAY_RECEIVER_ADDRESS: wallet that must receive payments (any encoding)
- SPINPAY_MIN_AMOUNT: minimum payment in nanotons (default: 100)
- SPINPAY_INDEXING_LAG_SEC / SPINPAY_RECENCY_WINDOW_SEC / SPINPAY_EVENT_PAGE_SIZE
- SPINPAY_REQUEST_TIMEOUT_SEC / SPINPAY_POLL_TIMEOUT_SEC / SPINPAY_MAX_POLL_ATTEMPTS
- SPINPAY_REQUIRE_SENDER_MATCH: 1/true to reject claims that do not name their sender
- TONAPI_KEY, TONCENTER_API_KEY: optional upstream API keys
- TONAPI_BASE_URL, TONCENTER_BASE_URL: upstream base URLs (mainnet defaults)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

TONAPI_MAINNET_URL = "https://tonapi.io"
TONCENTER_MAINNET_URL = "https://toncenter.com"

_TRUE_VALUES = ("1", "true", "yes", "on")


def load_spinpay_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def env_optional(name: str) -> str | None:
    value = env_str(name)
    return value or None


def env_int(name: str, default: int) -> int:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def env_float(name: str, default: float) -> float:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def env_bool(name: str, default: bool = False) -> bool:
    raw = env_str(name).lower()
    if not raw:
        return default
    return raw in _TRUE_VALUES


def get_tonapi_base_url() -> str:
    load_spinpay_env()
    return env_str("TONAPI_BASE_URL", TONAPI_MAINNET_URL).rstrip("/")


def get_toncenter_base_url() -> str:
    load_spinpay_env()
    return env_str("TONCENTER_BASE_URL", TONCENTER_MAINNET_URL).rstrip("/")
