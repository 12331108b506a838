"""
Configuration management for Backend SpinPay.

Loads and validates settings from environment variables and an optional
.env file. VerifierConfig is the single source of truth injected into the
verification engine.
"""

from backend_spinpay.config.settings import (  # noqa: F401
    UpstreamEndpoint,
    VerifierConfig,
    get_settings,
    load_config_from_env,
)

__all__ = ["UpstreamEndpoint", "VerifierConfig", "get_settings", "load_config_from_env"]
