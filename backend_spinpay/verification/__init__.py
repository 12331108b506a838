"""
Verification package — claim validation, decision and orchestration.
"""

from backend_spinpay.verification.decision import decide, validate_claim
from backend_spinpay.verification.engine import PaymentVerifier

__all__ = ["PaymentVerifier", "decide", "validate_claim"]
