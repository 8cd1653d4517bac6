"""DeribitClient - session coordinator facade over auth, orders and stream"""

import asyncio
from collections.abc import Awaitable, Callable
from types import TracebackType

import httpx
from loguru import logger

from deribit_trader.core.config import Config
from deribit_trader.domain.models import (
    AccessToken,
    BookInterval,
    ErrorKind,
    Failure,
    OrderKind,
    Response,
    book_channel,
)
from deribit_trader.infrastructure.exchange.protocols import MessageHandler
from deribit_trader.shared.exceptions import DeribitAuthenticationError

from .auth import DeribitAuthManager, is_authorization_error
from .orders import DeribitOrders
from .requests import DeribitRequestClient
from .stream import DeribitStreamSession

StreamFactory = Callable[[MessageHandler | None], DeribitStreamSession]


class DeribitClient:
    """Deribit session coordinator (facade pattern)

    Delegates to DeribitAuthManager, DeribitOrders and DeribitStreamSession.
    Callers never hold the token or the streaming connection: they call
    ``authenticate()`` once, then the trading and streaming operations.

    Authentication failure at startup is fatal; until ``authenticate()`` has
    succeeded every other operation raises DeribitAuthenticationError.
    """

    def __init__(
        self,
        config: Config,
        stream_factory: StreamFactory | None = None,
    ) -> None:
        """Initialize the session coordinator

        Args:
            config: Endpoint, credentials and timeouts
            stream_factory: Builds a StreamSession for ``start_stream``
                (tests inject sessions with fake connections)
        """
        self._config = config
        self._request_client = DeribitRequestClient(
            config.base_url,
            timeout=config.request_timeout,
            connect_timeout=config.connect_timeout,
        )
        self._auth_manager = DeribitAuthManager(
            config.credentials, self._request_client
        )
        self._orders = DeribitOrders(self._request_client)
        self._stream_factory = stream_factory or self._default_stream
        self._stream: DeribitStreamSession | None = None
        self._stream_task: asyncio.Task | None = None
        self._authenticated = False

    async def __aenter__(self) -> "DeribitClient":
        await self.authenticate()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def stream(self) -> DeribitStreamSession | None:
        """The current stream session, if one was started"""
        return self._stream

    @property
    def auth_manager(self) -> DeribitAuthManager:
        """Access auth manager for testing"""
        return self._auth_manager

    @property
    def request_client(self) -> DeribitRequestClient:
        """Access request client for testing"""
        return self._request_client

    def set_http_client(self, client: httpx.AsyncClient) -> None:
        """Set the HTTP client for requests

        Args:
            client: httpx AsyncClient instance
        """
        self._request_client.set_http_client(client)

    async def authenticate(self) -> AccessToken:
        """Exchange the configured credentials for an access token

        Raises:
            DeribitAuthenticationError: Fatal; no other operation is usable
        """
        token = await self._auth_manager.authenticate()
        self._authenticated = True
        logger.info("Authentication Done...")
        return token

    async def place_order(
        self,
        instrument: str,
        kind: OrderKind | str,
        quantity: float,
        price: float | None = None,
    ) -> Response:
        """Place a buy order"""
        return await self._private(
            lambda token: self._orders.place_order(
                token, instrument, kind, quantity, price
            )
        )

    async def modify_order(
        self,
        order_id: str,
        quantity: float | None = None,
        contracts: float | None = None,
        price: float | None = None,
        advanced: str | None = None,
        post_only: bool | None = None,
        reduce_only: bool | None = None,
    ) -> Response:
        """Edit an open order"""
        return await self._private(
            lambda token: self._orders.modify_order(
                order_id,
                token,
                quantity=quantity,
                contracts=contracts,
                price=price,
                advanced=advanced,
                post_only=post_only,
                reduce_only=reduce_only,
            )
        )

    async def sell_order(
        self,
        instrument: str,
        quantity: float | None = None,
        contracts: float | None = None,
        price: float | None = None,
        kind: OrderKind | str | None = None,
        trigger: str | None = None,
        trigger_price: float | None = None,
    ) -> Response:
        """Place a sell order"""
        return await self._private(
            lambda token: self._orders.sell_order(
                token,
                instrument,
                quantity=quantity,
                contracts=contracts,
                price=price,
                kind=kind,
                trigger=trigger,
                trigger_price=trigger_price,
            )
        )

    async def cancel_order(self, order_id: str) -> Response:
        """Cancel specific order"""
        return await self._private(
            lambda token: self._orders.cancel_order(order_id, token)
        )

    async def get_open_orders(self) -> Response:
        """Query all open orders"""
        return await self._private(self._orders.get_open_orders)

    async def get_order_state(self, order_id: str) -> Response:
        """Query one order"""
        return await self._private(
            lambda token: self._orders.get_order_state(order_id, token)
        )

    async def get_order_book(self, instrument: str) -> Response:
        """Query the public order book"""
        self._require_authenticated()
        return await self._orders.get_order_book(instrument)

    async def start_stream(
        self,
        instrument: str,
        interval_choice: BookInterval | int | str,
        on_message: MessageHandler | None = None,
    ) -> asyncio.Task:
        """Connect, subscribe to the book channel and start listening

        The receive loop runs in its own task, returned to the caller, who
        joins it or calls ``stop_stream()``. A running stream is stopped first.

        Raises:
            DeribitConnectionError: The stream could not be opened
            DeribitStreamError: The handshake was rejected
        """
        token = await self._token()
        await self.stop_stream()

        channel = book_channel(instrument, interval_choice)
        stream = self._stream_factory(on_message)
        await stream.connect(
            self._config.host, self._config.port, self._config.stream_path
        )
        try:
            await stream.subscribe(channel, token)
        except BaseException:
            await stream.close()
            raise

        self._stream = stream
        self._stream_task = asyncio.create_task(
            stream.listen(), name=f"deribit-stream-{channel}"
        )
        # let the receive loop start before control returns to the caller
        await asyncio.sleep(0)
        logger.info(f"Started stream task for {channel}")
        return self._stream_task

    async def stop_stream(self) -> None:
        """Close the stream session and wait for its receive loop to end"""
        if self._stream is not None:
            await self._stream.close()
        if self._stream_task is not None:
            await asyncio.gather(self._stream_task, return_exceptions=True)
            logger.info("Stream task stopped")
        self._stream = None
        self._stream_task = None

    async def close(self) -> None:
        """Stop streaming and release HTTP connections"""
        await self.stop_stream()
        await self._request_client.aclose()

    def _require_authenticated(self) -> None:
        if not self._authenticated:
            raise DeribitAuthenticationError(
                "Not authenticated - call authenticate() first"
            )

    async def _token(self) -> str:
        """Current token value, renewed when expiring or invalidated

        Raises:
            DeribitAuthenticationError: Not authenticated yet, or renewal failed
        """
        self._require_authenticated()
        token = await self._auth_manager.ensure_token()
        return token.value

    async def _private(
        self, call: Callable[[str], Awaitable[Response]]
    ) -> Response:
        """Run an authenticated call, renewing the token first if needed

        A failed renewal is returned as the call's result.
        """
        try:
            token = await self._token()
        except DeribitAuthenticationError as e:
            if not self._authenticated:
                raise
            return e.failure or Failure(
                kind=ErrorKind.VALIDATION, message=str(e)
            )
        response = await call(token)
        if is_authorization_error(response):
            logger.warning(
                "Authorization rejected by exchange - token will be renewed "
                "before the next call"
            )
            self._auth_manager.invalidate()
        return response

    def _default_stream(
        self, on_message: MessageHandler | None
    ) -> DeribitStreamSession:
        return DeribitStreamSession(
            on_message=on_message, open_timeout=self._config.connect_timeout
        )
