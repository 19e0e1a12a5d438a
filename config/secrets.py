"""Unified secret access for the estimate intake flow.

This module provides a consistent interface for accessing secrets that works
in both local development (emulator) and production environments.

In production: Uses Google Cloud Secret Manager (Firebase Secrets)
In emulator: Falls back to environment variables

Usage:
    from config.secrets import get_estimate_api_key, get_secret

    api_key = get_estimate_api_key()
"""

import os
from functools import lru_cache
from typing import Optional

import structlog

logger = structlog.get_logger()


def is_emulator_mode() -> bool:
    """Check if running in Firebase emulator mode."""
    return (
        os.environ.get('FUNCTIONS_EMULATOR') == 'true' or
        os.environ.get('FIRESTORE_EMULATOR_HOST') is not None
    )


def get_secret(secret_id: str) -> Optional[str]:
    """
    Get secret from Firebase Secrets Manager (production) or environment (local).

    Args:
        secret_id: The name of the secret (e.g., 'GENERATE_ESTIMATE_API_KEY')

    Returns:
        The secret value, or None if not found
    """
    if is_emulator_mode():
        value = os.environ.get(secret_id)
        if not value:
            logger.warning("secret_missing_from_environment", secret_id=secret_id)
        return value

    try:
        from google.cloud import secretmanager

        client = secretmanager.SecretManagerServiceClient()
        project_id = os.environ.get('GCLOUD_PROJECT') or os.environ.get('GOOGLE_CLOUD_PROJECT', 'estimate-intake-dev')
        name = f"projects/{project_id}/secrets/{secret_id}/versions/latest"

        response = client.access_secret_version(request={"name": name})
        value = response.payload.data.decode("UTF-8")
        logger.debug("secret_loaded", secret_id=secret_id, source="secret_manager")
        return value

    except Exception as e:
        logger.warning("secret_manager_lookup_failed", secret_id=secret_id, error=str(e))
        return os.environ.get(secret_id)


@lru_cache(maxsize=1)
def get_estimate_api_key() -> Optional[str]:
    """Get the bearer key for the generate-estimate function."""
    return get_secret('GENERATE_ESTIMATE_API_KEY')


def clear_secret_cache() -> None:
    """Clear cached secrets. Useful for testing or when secrets are rotated."""
    get_estimate_api_key.cache_clear()
