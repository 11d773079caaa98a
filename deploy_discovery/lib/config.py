"""
Runtime configuration for deployed-contract discovery.

Settings come from the environment (or a local .env file). Credentials are
mandatory; everything else has a default matching the Rootstock testnet
deployment.
"""

import logging
import sys
from typing import Any, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DEPLOYER_WALLET = "0xC0BF05DE429252699cCFD7aBA2645f640e816257"
DEFAULT_CHAIN_ID = 31  # Rootstock testnet


class ConfigurationError(Exception):
    """Raised at start-up when required settings are missing or invalid."""

    pass


class Settings(BaseSettings):
    """Process-wide settings, read once at start-up."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    thirdweb_client_id: str = Field(min_length=1)
    thirdweb_secret_key: str = Field(min_length=1)
    deployer_wallet: str = DEFAULT_DEPLOYER_WALLET
    chain_id: int = DEFAULT_CHAIN_ID
    receipt_workers: int = Field(default=16, ge=1)
    request_timeout: float = Field(default=30.0, gt=0)
    host: str = "0.0.0.0"
    port: int = 4000
    log_level: str = "INFO"


def load_settings(**overrides: Optional[Any]) -> Settings:
    """
    Load settings from the environment, applying explicit overrides.

    Args:
        **overrides: Setting values that take precedence over the
            environment. None values are ignored.

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: If credentials are missing or a value is invalid
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**values)
    except ValidationError as e:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
        raise ConfigurationError(f"Invalid or missing settings: {', '.join(fields)}") from e


def configure_logging(level: str) -> None:
    """Send log records to stderr so stdout carries only command output."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )
