"""
Main entrypoint: payment verification API server.

Loads configuration (env / .env), fails fast on invalid settings, then runs
the FastAPI app with uvicorn in the main thread.

Env: SPINPAY_RECEIVER_ADDRESS, SPINPAY_MIN_AMOUNT, TONAPI_KEY, API_HOST, API_PORT, LOG_LEVEL, etc.

Equivalent: uvicorn backend_spinpay.api_server.app:app --host 0.0.0.0 --port 8000
"""

import os
import sys

# Configure structured JSON logging before other imports that may log
from backend_spinpay.spinpay_logging import get_logger, short_address

logger = get_logger("main")


def main() -> None:
    """Validate settings, then serve the API."""
    from backend_spinpay.config import get_settings

    try:
        config = get_settings()
    except ValueError as e:
        logger.error("main_config_error", error=str(e))
        sys.exit(1)

    if not config.receiver_address:
        logger.warning(
            "main_no_receiver_configured",
            message="SPINPAY_RECEIVER_ADDRESS unset: every request must name its receiver",
        )
    logger.info(
        "main_config_loaded",
        receiver=short_address(config.receiver_address, 12),
        minimum_amount=config.minimum_amount,
        transaction_endpoints=[e.name for e in config.transaction_endpoints],
        event_endpoints=[e.name for e in config.event_endpoints],
    )

    api_host = os.getenv("API_HOST", "0.0.0.0").strip()
    api_port = int(os.getenv("API_PORT", "8000").strip() or "8000")

    from backend_spinpay.api_server.app import app
    import uvicorn

    logger.info("main_server_starting", host=api_host, port=api_port)
    uvicorn.run(app, host=api_host, port=api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
