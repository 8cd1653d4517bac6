"""Exchange protocols defining the seams between client components.

These protocols let tests and collaborators substitute any component
(including the raw WebSocket connection) with a structurally compatible one.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Protocol, runtime_checkable

from deribit_trader.domain.models import (
    AccessToken,
    Request,
    Response,
    StreamMessage,
    StreamState,
)

MessageHandler = Callable[[StreamMessage], Awaitable[None] | None]


@runtime_checkable
class StreamConnection(Protocol):
    """The subset of a websockets client connection the stream uses."""

    async def send(self, message: str) -> None: ...

    async def recv(self) -> str | bytes: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


@runtime_checkable
class RequestGateway(Protocol):
    """Protocol for dispatching request-response calls."""

    async def execute(
        self, request: Request, token: str | None = None
    ) -> Response:
        """Dispatch one request and classify the reply."""
        ...


@runtime_checkable
class TokenProvider(Protocol):
    """Protocol for access token lifecycle management."""

    @property
    def token(self) -> AccessToken | None:
        """The current token, if any."""
        ...

    async def authenticate(self) -> AccessToken:
        """Exchange credentials for a new token."""
        ...

    async def ensure_token(self, skew_seconds: int = 60) -> AccessToken:
        """Return a usable token, renewing it if needed."""
        ...

    def invalidate(self) -> None:
        """Forget the current token."""
        ...


@runtime_checkable
class OrderManager(Protocol):
    """Protocol for order management operations."""

    async def place_order(
        self,
        token: str,
        instrument: str,
        kind: Any,
        quantity: float,
        price: float | None = None,
    ) -> Response:
        """Place a buy order."""
        ...

    async def sell_order(
        self, token: str, instrument: str, **kwargs: Any
    ) -> Response:
        """Place a sell order."""
        ...

    async def modify_order(
        self, order_id: str, token: str, **kwargs: Any
    ) -> Response:
        """Edit an open order."""
        ...

    async def cancel_order(self, order_id: str, token: str) -> Response:
        """Cancel a specific order."""
        ...

    async def get_open_orders(self, token: str) -> Response:
        """Query all open orders."""
        ...

    async def get_order_state(self, order_id: str, token: str) -> Response:
        """Query one order."""
        ...

    async def get_order_book(self, instrument: str) -> Response:
        """Query the public order book."""
        ...


@runtime_checkable
class MarketDataStream(Protocol):
    """Protocol for a live market data session."""

    @property
    def state(self) -> StreamState: ...

    async def connect(
        self, host: str, port: int | str, path: str = ...
    ) -> None: ...

    async def subscribe(
        self, channels: str | Iterable[str], token: str
    ) -> None: ...

    async def listen(self) -> None: ...

    async def close(self) -> None: ...
