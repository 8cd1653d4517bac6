"""Pytest fixtures for deribit_trader tests"""

from pathlib import Path

import pytest
from dotenv import load_dotenv

from deribit_trader.core.config import Config
from deribit_trader.domain.models import Credentials

# =============================================================================
# Global Test Setup
# =============================================================================

# Load environment variables from .env file for all tests
# This makes testnet credentials available to integration tests
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


@pytest.fixture
def credentials() -> Credentials:
    """Dummy client credentials"""
    return Credentials(client_id="test_client_id", client_secret="s3cr3t")


@pytest.fixture
def config(credentials) -> Config:
    """Testnet configuration with dummy credentials"""
    return Config(credentials=credentials, request_timeout=5.0)


@pytest.fixture
def auth_result() -> dict:
    """public/auth result payload as returned by the test exchange"""
    return {
        "access_token": "test_access_token",
        "expires_in": 900,
        "refresh_token": "test_refresh_token",
        "scope": "connection mainaccount",
        "token_type": "bearer",
    }
