"""Estimate intake configuration settings.

Loads configuration from environment variables with sensible defaults.
Secrets are loaded via Firebase Secrets Manager (production) or environment variables (emulator).
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for non-secret configuration (emulator hosts, endpoints, etc.)
load_dotenv()


def _get_default_estimate_url() -> str:
    """Get default generate-estimate URL based on environment mode."""
    if (os.getenv("USE_FIREBASE_EMULATORS", "false").lower() == "true" or
        os.getenv("FUNCTIONS_EMULATOR", "false").lower() == "true"):
        return "http://127.0.0.1:5001/estimate-intake-dev/us-central1/generate_estimate"
    return "http://localhost:5001/generate_estimate"


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Note: Secrets (GENERATE_ESTIMATE_API_KEY) should be accessed via config.secrets,
    not directly from this class.
    """

    # Firebase Configuration
    firebase_project_id: Optional[str] = field(default_factory=lambda: os.getenv("FIREBASE_PROJECT_ID"))
    use_firebase_emulators: bool = field(default_factory=lambda: os.getenv("USE_FIREBASE_EMULATORS", "false").lower() == "true")
    firestore_emulator_host: str = field(default_factory=lambda: os.getenv("FIRESTORE_EMULATOR_HOST", "localhost:8081"))

    # Collections
    leads_collection: str = field(default_factory=lambda: os.getenv("LEADS_COLLECTION", "leads"))
    categories_collection: str = field(default_factory=lambda: os.getenv("CATEGORIES_COLLECTION", "categories"))

    # Estimate job endpoint
    generate_estimate_url: str = field(default_factory=lambda: os.getenv("GENERATE_ESTIMATE_URL", _get_default_estimate_url()))
    generate_estimate_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("GENERATE_ESTIMATE_TIMEOUT_SECONDS", "30")))

    # Polling
    estimate_poll_interval_seconds: float = field(default_factory=lambda: float(os.getenv("ESTIMATE_POLL_INTERVAL_SECONDS", "3")))
    estimate_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("ESTIMATE_TIMEOUT_SECONDS", "120")))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def validate(self) -> None:
        """Validate polling settings.

        Raises:
            ValueError: If the poll interval or timeout is unusable.
        """
        if self.estimate_poll_interval_seconds <= 0:
            raise ValueError("ESTIMATE_POLL_INTERVAL_SECONDS must be positive")
        if self.estimate_timeout_seconds < self.estimate_poll_interval_seconds:
            raise ValueError("ESTIMATE_TIMEOUT_SECONDS must be at least one poll interval")

    @property
    def is_emulator_mode(self) -> bool:
        """Check if running in emulator mode."""
        return self.use_firebase_emulators


# Singleton settings instance
settings = Settings()
