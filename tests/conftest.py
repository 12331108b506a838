"""
Pytest fixtures for SpinPay tests. Upstream indexers are faked with httpx.MockTransport.
"""

from __future__ import annotations

import pytest

from tests.helpers import RecordingSleep, make_config


@pytest.fixture
def config():
    """Default test config: receiver configured, no minimum, no indexing-lag wait."""
    return make_config()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def api_client():
    """
    FastAPI TestClient with get_verifier overridden per test.

    Yields (client, install) where install(verifier) swaps the verifier in.
    """
    from fastapi.testclient import TestClient

    from backend_spinpay.api_server.server import app, get_verifier

    def install(verifier):
        app.dependency_overrides[get_verifier] = lambda: verifier

    with TestClient(app) as client:
        yield client, install
    app.dependency_overrides.clear()
