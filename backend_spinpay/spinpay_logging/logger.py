"""
Structured logging for payment verification: one JSON line per event.

Every line carries timestamp, level, logger, event_type and service. The
verification path binds claim context once (bind_claim) so that upstream
and decision events for the same claim share path / tx_id / receiver keys.
Payload fields (BOC blobs, upstream documents, request bodies) are masked
before rendering; only their size is kept.

No backend_spinpay imports here: every other package imports this one.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

SERVICE_NAME = "spinpay"

# Keys whose values are never written to the log stream
PAYLOAD_KEYS = frozenset({"boc", "raw_transaction_blob", "document", "body"})


def _event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Move structlog's positional 'event' to event_type and tag the service."""
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", str(event))
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _mask_payloads(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Replace payload values with their length."""
    for key in PAYLOAD_KEYS.intersection(event_dict):
        value = event_dict[key]
        size = len(value) if hasattr(value, "__len__") else None
        event_dict[key] = f"<masked len={size}>"
    return event_dict


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure structlog for the process.

    level defaults to LOG_LEVEL (INFO); fmt to LOG_FORMAT: "json" for
    production, anything else renders for a terminal.
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    fmt = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.format_exc_info,
        _mask_payloads,
        _event_type,
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty(), event_key="event_type"))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("decision_reached", verified=True, reason=None)
    """
    return structlog.get_logger(name).bind(logger=name)


def short_address(address: str | None, keep: int = 8) -> str:
    """Truncate an address for log fields."""
    if not address:
        return "?"
    return address if len(address) <= keep else address[:keep] + "..."


def bind_claim(
    log: Any,
    *,
    path: str,
    transaction_id: str | None = None,
    receiver: str | None = None,
    sender: str | None = None,
) -> Any:
    """Bind the fields that identify one claim to every later event of its verification."""
    fields: dict[str, Any] = {"path": path, "receiver": short_address(receiver, 12)}
    if transaction_id:
        fields["tx_id"] = transaction_id[:16]
    if sender:
        fields["sender"] = short_address(sender, 12)
    return log.bind(**fields)
