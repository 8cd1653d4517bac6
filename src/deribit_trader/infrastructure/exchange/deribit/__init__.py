"""Deribit infrastructure module

DeribitAuthManager - Credential exchange and access token lifecycle
DeribitRequestClient - Request-response calls and reply classification
DeribitOrders - Order placement, edits, cancels and queries
DeribitStreamSession - Streaming connection, subscriptions, receive loop
DeribitClient - Session coordinator facade
"""

from .auth import DeribitAuthManager, is_authorization_error
from .facade import DeribitClient
from .orders import DeribitOrders
from .requests import DeribitRequestClient
from .stream import DeribitStreamSession, log_message
from .transport import build_http_client, install_logging_bridge, open_stream

__all__ = [
    "DeribitAuthManager",
    "DeribitClient",
    "DeribitOrders",
    "DeribitRequestClient",
    "DeribitStreamSession",
    "build_http_client",
    "install_logging_bridge",
    "is_authorization_error",
    "log_message",
    "open_stream",
]
