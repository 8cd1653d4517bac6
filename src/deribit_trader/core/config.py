"""Configuration management for the Deribit trading client"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from deribit_trader.domain.models import Credentials
from deribit_trader.shared.constants import (
    DEFAULT_PORT,
    PRODUCTION_HOST,
    STREAM_PATH,
    TESTNET_HOST,
)
from deribit_trader.shared.exceptions import ConfigurationError


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be a number, got {raw!r}"
        ) from e


@dataclass(frozen=True)
class Config:
    """Configuration for the Deribit client loaded from environment variables"""

    # Fields without defaults (required parameters)
    credentials: Credentials

    # Fields with defaults (testnet unless told otherwise)
    host: str = TESTNET_HOST
    port: int = DEFAULT_PORT
    request_timeout: float = 10.0
    connect_timeout: float = 10.0
    stream_path: str = field(default=STREAM_PATH)

    def __post_init__(self) -> None:
        if self.host == PRODUCTION_HOST:
            raise ConfigurationError(
                f"Refusing to target {PRODUCTION_HOST}. "
                "This client is designed for the test exchange only."
            )

    @property
    def base_url(self) -> str:
        """HTTPS base URL for request-response calls"""
        if self.port == DEFAULT_PORT:
            return f"https://{self.host}"
        return f"https://{self.host}:{self.port}"

    @property
    def stream_url(self) -> str:
        """WSS URL for the streaming connection"""
        return f"wss://{self.host}:{self.port}{self.stream_path}"

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """Load configuration from environment variables

        Args:
            env_file: Optional .env file loaded before reading the environment.
                Values already present in the environment take precedence.

        Returns:
            Config instance with values from environment

        Raises:
            ConfigurationError: If required environment variables are missing or
                invalid (a ValueError subclass)
        """
        if env_file is not None:
            load_dotenv(env_file)

        client_id = os.getenv("DERIBIT_CLIENT_ID")
        client_secret = os.getenv("DERIBIT_CLIENT_SECRET")

        required_vars = {
            "DERIBIT_CLIENT_ID": client_id,
            "DERIBIT_CLIENT_SECRET": client_secret,
        }
        missing = [k for k, v in required_vars.items() if not v]
        if missing:
            raise ConfigurationError(
                f"Missing Deribit configuration: {missing}"
            )

        port_raw = os.getenv("DERIBIT_PORT", str(DEFAULT_PORT))
        try:
            port = int(port_raw)
        except ValueError as e:
            raise ConfigurationError(
                f"DERIBIT_PORT must be an integer, got {port_raw!r}"
            ) from e

        config = cls(
            credentials=Credentials(
                client_id=client_id,  # type: ignore[arg-type]
                client_secret=client_secret,  # type: ignore[arg-type]
            ),
            host=os.getenv("DERIBIT_HOST", TESTNET_HOST),
            port=port,
            request_timeout=_float_env("DERIBIT_REQUEST_TIMEOUT", 10.0),
            connect_timeout=_float_env("DERIBIT_CONNECT_TIMEOUT", 10.0),
        )

        logger.info("Configuration loaded:")
        logger.info(f"  Host: {config.host}:{config.port}")
        logger.info(f"  Client ID: {config.credentials.client_id}")
        logger.info("  Client Secret: ***")
        logger.info(f"  Request Timeout: {config.request_timeout}s")
        logger.info(f"  Connect Timeout: {config.connect_timeout}s")

        return config
