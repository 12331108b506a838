"""
Application-level exceptions.

Business non-matches (wrong receiver, low amount, nothing found, stale) are
never raised; they are reasons on VerificationResult. Only malformed claims
and full upstream outages fail a verification call.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_spinpay.ledger.models import Reason


class VerificationError(Exception):
    """Base class for errors that abort a verification call."""

    reason: Reason = Reason.INVALID_CLAIM


class InvalidClaimError(VerificationError, ValueError):
    """Claim is malformed or incomplete; raised before any upstream call."""

    reason = Reason.INVALID_CLAIM


class AddressFormatError(ValueError):
    """Address is not a valid raw or user-friendly TON address."""


@dataclass(frozen=True)
class EndpointFailure:
    """One failed upstream attempt: endpoint name and a short error description."""

    endpoint: str
    error: str


class UpstreamUnavailableError(VerificationError):
    """Every configured upstream endpoint failed or timed out."""

    reason = Reason.UPSTREAM_UNAVAILABLE

    def __init__(self, message: str, failures: list[EndpointFailure] | None = None) -> None:
        super().__init__(message)
        self.failures: list[EndpointFailure] = list(failures or [])
