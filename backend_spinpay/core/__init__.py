"""
Core package — exceptions shared by the ledger, verification and API layers.
"""

from backend_spinpay.core.exceptions import (
    AddressFormatError,
    EndpointFailure,
    InvalidClaimError,
    UpstreamUnavailableError,
    VerificationError,
)

__all__ = [
    "AddressFormatError",
    "EndpointFailure",
    "InvalidClaimError",
    "UpstreamUnavailableError",
    "VerificationError",
]
