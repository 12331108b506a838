"""
FastAPI server — HTTP adapter over the verification engine.

Exposes POST /check-payment: parses the JSON body into a PaymentClaim,
awaits PaymentVerifier.verify() and serializes the verdict. No business
logic lives here. Engine errors map to status codes: invalid claim -> 400,
upstream outage -> 503. Config via env (see backend_spinpay.config.env).
"""

from __future__ import annotations

import base64
import binascii
import functools
from typing import Any

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from backend_spinpay import __version__
from backend_spinpay.config import get_settings
from backend_spinpay.core.exceptions import (
    InvalidClaimError,
    UpstreamUnavailableError,
    VerificationError,
)
from backend_spinpay.ledger.amounts import parse_amount
from backend_spinpay.ledger.models import PaymentClaim, VerificationResult
from backend_spinpay.spinpay_logging import get_logger
from backend_spinpay.verification import PaymentVerifier

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Request / response models
# -----------------------------------------------------------------------------


class CheckPaymentRequest(BaseModel):
    """POST /check-payment body. Either txHash or boc (+ from) is required."""

    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str | None = Field(None, alias="txHash", max_length=128, description="Transaction hash (hex or base64)")
    boc: str | None = Field(None, max_length=65536, description="Signed message BOC returned by the wallet (base64)")
    sender: str | None = Field(None, alias="from", max_length=128, description="Payer wallet address")
    receiver: str | None = Field(None, alias="to", max_length=128, description="Receiver; defaults to the configured wallet")
    amount: int | str | None = Field(None, description="Expected amount in nanotons; defaults to the configured minimum")


class MatchedTransfer(BaseModel):
    recipient: str
    sender: str | None = None
    amount: str = Field(..., description="Nanotons as a decimal string (exceeds JS number range)")
    timestamp: str | None = None
    source_document_kind: str
    reference: str | None = None


class CheckPaymentResponse(BaseModel):
    """POST /check-payment response."""

    success: bool = Field(..., description="Same as verified; kept for existing clients")
    verified: bool
    reason: str | None = Field(None, description="Why the claim was not verified")
    transaction_id: str | None = None
    matched: MatchedTransfer | None = None
    error: str | None = None


# -----------------------------------------------------------------------------
# Dependencies and helpers
# -----------------------------------------------------------------------------


@functools.lru_cache(maxsize=1)
def get_verifier() -> PaymentVerifier:
    """Dependency: one verifier per process; every call is still independent."""
    return PaymentVerifier(get_settings())


def claim_from_request(body: CheckPaymentRequest, verifier: PaymentVerifier) -> PaymentClaim:
    """Build a PaymentClaim, filling receiver/amount from config when omitted."""
    config = verifier.config
    blob: bytes | None = None
    if body.boc:
        try:
            blob = base64.b64decode(body.boc.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidClaimError(f"boc is not valid base64: {e}") from e
    receiver = body.receiver or config.receiver_address
    if not receiver:
        raise InvalidClaimError("receiver address is required")
    amount = parse_amount(body.amount) if body.amount is not None else config.minimum_amount
    return PaymentClaim(
        claimed_receiver_address=receiver,
        claimed_amount=amount,
        transaction_id=body.tx_hash or None,
        raw_transaction_blob=blob,
        claimed_sender_address=body.sender or None,
    )


def _error_response(status_code: int, error: VerificationError) -> JSONResponse:
    body = CheckPaymentResponse(
        success=False,
        verified=False,
        reason=error.reason.value,
        error=str(error),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _to_response(result: VerificationResult) -> CheckPaymentResponse:
    payload: dict[str, Any] = result.to_dict()
    return CheckPaymentResponse(success=result.verified, **payload)


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------

app = FastAPI(title="SpinPay payment verification", version=__version__)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "version": __version__}


@app.post("/check-payment", response_model=CheckPaymentResponse)
async def check_payment(
    body: CheckPaymentRequest,
    verifier: PaymentVerifier = Depends(get_verifier),
):
    """Verify a claimed payment; 400 for invalid claims, 503 when the indexers are down."""
    try:
        claim = claim_from_request(body, verifier)
        result = await verifier.verify(claim)
    except InvalidClaimError as e:
        return _error_response(400, e)
    except UpstreamUnavailableError as e:
        return _error_response(503, e)
    return _to_response(result)


__all__ = ["app", "get_verifier", "claim_from_request"]
