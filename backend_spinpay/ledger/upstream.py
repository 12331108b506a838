"""
Upstream fetch with ordered endpoint fallback.

Each configured endpoint is tried exactly once, in order; the first
HTTP-success, JSON-parseable response wins. There is no backoff: endpoints
differ in what they have indexed, so the next one may know the transaction.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

import httpx

from backend_spinpay.config.settings import UpstreamEndpoint
from backend_spinpay.core.exceptions import EndpointFailure, UpstreamUnavailableError
from backend_spinpay.spinpay_logging import get_logger

logger = get_logger(__name__)


async def fetch_first_success(
    client: httpx.AsyncClient,
    endpoints: Sequence[UpstreamEndpoint],
    *,
    timeout_sec: float,
    lookup: str,
    log: Any = None,
    **params: object,
) -> tuple[UpstreamEndpoint, Any]:
    """
    GET each endpoint URL (formatted with params) until one succeeds.

    Returns (endpoint, parsed JSON). Raises UpstreamUnavailableError with the
    per-endpoint failures once every endpoint has failed. Timeouts and
    transport errors count as failures; cancellation propagates.
    """
    log = log or logger
    failures: list[EndpointFailure] = []
    for endpoint in endpoints:
        url = endpoint.url(**params)
        started = time.perf_counter()
        log.info("upstream_call", lookup=lookup, endpoint=endpoint.name)
        try:
            resp = await client.get(url, headers=endpoint.headers, timeout=timeout_sec)
            resp.raise_for_status()
            document = resp.json()
        except httpx.HTTPStatusError as e:
            failures.append(EndpointFailure(endpoint.name, f"HTTP {e.response.status_code}"))
        except httpx.TimeoutException:
            failures.append(EndpointFailure(endpoint.name, "timeout"))
        except httpx.HTTPError as e:
            failures.append(EndpointFailure(endpoint.name, f"transport: {type(e).__name__}"))
        except ValueError:
            failures.append(EndpointFailure(endpoint.name, "invalid JSON"))
        else:
            if isinstance(document, dict) and document.get("ok") is False:
                failures.append(EndpointFailure(endpoint.name, "upstream reported ok=false"))
            else:
                log.info(
                    "upstream_result",
                    lookup=lookup,
                    endpoint=endpoint.name,
                    status_code=resp.status_code,
                    elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
                )
                return endpoint, document
        log.warning(
            "upstream_endpoint_failed",
            lookup=lookup,
            endpoint=endpoint.name,
            error=failures[-1].error,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
        )

    log.error("upstream_exhausted", lookup=lookup, endpoint_count=len(endpoints))
    raise UpstreamUnavailableError(
        f"All {len(endpoints)} upstream endpoints failed for {lookup}",
        failures=failures,
    )
