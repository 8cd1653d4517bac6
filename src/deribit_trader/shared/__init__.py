"""Shared exceptions and constants for the Deribit client."""

from .constants import (
    AUTHORIZATION_ERROR_CODES,
    PRODUCTION_HOST,
    STREAM_PATH,
    TESTNET_HOST,
)

__all__ = [
    "AUTHORIZATION_ERROR_CODES",
    "PRODUCTION_HOST",
    "STREAM_PATH",
    "TESTNET_HOST",
]
