"""Infrastructure exchange module."""

from .protocols import (
    MarketDataStream,
    OrderManager,
    RequestGateway,
    StreamConnection,
    TokenProvider,
)
from .deribit.facade import DeribitClient

__all__ = [
    "DeribitClient",
    "MarketDataStream",
    "OrderManager",
    "RequestGateway",
    "StreamConnection",
    "TokenProvider",
]
