"""
Structured logging for Backend SpinPay.

JSON logs with timestamp, event_type and per-event fields.
Use get_logger() in every module; bind_claim() on the verification path.
"""

from backend_spinpay.spinpay_logging.logger import (
    bind_claim,
    configure_logging,
    get_logger,
    short_address,
)

__all__ = ["bind_claim", "configure_logging", "get_logger", "short_address"]
