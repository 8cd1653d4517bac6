"""Shared constants for the Deribit exchange."""

TESTNET_HOST = "test.deribit.com"
PRODUCTION_HOST = "www.deribit.com"
DEFAULT_PORT = 443
STREAM_PATH = "/ws/api/v2"

# 13004 invalid_credentials, 13009 unauthorized
AUTHORIZATION_ERROR_CODES = frozenset({13004, 13009})
