"""
Configuration management for the CargaPlay WhatsApp integration.

Loads environment variables (and a local .env file, if present) once at
process start into an immutable Settings object that is passed to every
component.
"""

import os
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator


LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

# Environment variable name for each settings field
ENV_VARS: Dict[str, str] = {
    "waba_id": "WABA_ID",
    "phone_number_id": "PHONE_NUMBER_ID",
    "meta_access_token": "META_ACCESS_TOKEN",
    "graph_api_version": "GRAPH_API_VERSION",
    "wc_url": "WC_URL",
    "wc_consumer_key": "WC_CONSUMER_KEY",
    "wc_consumer_secret": "WC_CONSUMER_SECRET",
    "automator_email_webhook_url": "AUTOMATOR_EMAIL_WEBHOOK_URL",
    "host": "HOST",
    "port": "PORT",
    "settle_delay_seconds": "SETTLE_DELAY_SECONDS",
    "request_timeout_seconds": "REQUEST_TIMEOUT_SECONDS",
    "shutdown_grace_seconds": "SHUTDOWN_GRACE_SECONDS",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
}

MESSAGING_FIELDS = ("waba_id", "phone_number_id", "meta_access_token")
STORE_FIELDS = ("wc_url", "wc_consumer_key", "wc_consumer_secret")


class Settings(BaseModel):
    """Application settings. Frozen once built."""

    model_config = ConfigDict(frozen=True)

    # Meta WhatsApp Business (Graph API)
    waba_id: Optional[str] = None
    phone_number_id: Optional[str] = None
    meta_access_token: Optional[str] = None
    graph_api_version: str = "v20.0"

    # WooCommerce REST API
    wc_url: Optional[str] = None
    wc_consumer_key: Optional[str] = None
    wc_consumer_secret: Optional[str] = None

    # Email automation webhook (optional side channel)
    automator_email_webhook_url: Optional[str] = None

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    settle_delay_seconds: float = 15.0
    request_timeout_seconds: float = 30.0
    shutdown_grace_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value):
        """Upper-case the level; anything unknown falls back to INFO."""
        level = str(value or "").strip().upper()
        if level == "WARN":
            level = "WARNING"
        return level if level in LOG_LEVELS else "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, dotenv: bool = True) -> "Settings":
        """
        Build settings from the process environment.

        Args:
            environ: Mapping to read instead of os.environ (useful in tests)
            dotenv: Whether to load a .env file first

        Returns:
            Settings instance

        Raises:
            pydantic.ValidationError: If a numeric variable is malformed
        """
        if dotenv and environ is None:
            load_dotenv()

        source = os.environ if environ is None else environ

        values = {}
        for field, env_name in ENV_VARS.items():
            raw = source.get(env_name)
            if raw is None or not raw.strip():
                continue
            values[field] = raw.strip()

        return cls(**values)

    def _missing(self, fields) -> List[str]:
        return [ENV_VARS[name] for name in fields if not getattr(self, name)]

    def missing_messaging_settings(self) -> List[str]:
        """Environment variables required by the WhatsApp sender that are not set."""
        return self._missing(MESSAGING_FIELDS)

    def missing_store_settings(self) -> List[str]:
        """Environment variables required by the WooCommerce client that are not set."""
        return self._missing(STORE_FIELDS)

    def messaging_configured(self) -> bool:
        return not self.missing_messaging_settings()

    def store_configured(self) -> bool:
        return not self.missing_store_settings()
