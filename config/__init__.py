"""Estimate intake configuration.

This package contains:
- settings: Environment variables and configuration
- secrets: Unified secret access (Firebase Secrets Manager)
- errors: Custom exceptions and error codes
"""

from config.settings import settings
from config.errors import EstimateFlowError, GatewayError, ConfigurationError, ErrorCode
from config.secrets import get_secret, get_estimate_api_key

__all__ = [
    "settings",
    "EstimateFlowError",
    "GatewayError",
    "ConfigurationError",
    "ErrorCode",
    "get_secret",
    "get_estimate_api_key",
]
