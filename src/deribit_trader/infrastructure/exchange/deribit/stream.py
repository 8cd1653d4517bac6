"""DeribitStreamSession - streaming connection lifecycle and market data feed"""

import asyncio
import inspect
import json
from collections.abc import Awaitable, Callable, Iterable

from loguru import logger
from websockets.exceptions import ConnectionClosed

from deribit_trader.domain.models import (
    AccessToken,
    DataUpdate,
    PropagationStats,
    StreamMessage,
    StreamState,
    parse_stream_message,
)
from deribit_trader.domain.models.stream import now_ms
from deribit_trader.infrastructure.exchange.protocols import (
    MessageHandler,
    StreamConnection,
)
from deribit_trader.shared.constants import STREAM_PATH
from deribit_trader.shared.exceptions import (
    DeribitStreamError,
    DeribitValidationError,
)

from .transport import open_stream, stream_url

Connector = Callable[[str, float], Awaitable[StreamConnection]]

NORMAL_CLOSURE = 1000


def log_message(message: StreamMessage) -> None:
    """Default observer: report every message through loguru"""
    if isinstance(message, DataUpdate):
        logger.info(f"Received update on {message.channel}: {message.data}")
    else:
        logger.info(f"Received control message: {message.payload}")


class DeribitStreamSession:
    """Manages one streaming connection to the exchange

    Responsibilities:
    - Connect (resolve, TLS, WebSocket handshake on /ws/api/v2)
    - Subscription control messages and the set of active channels
    - The receive loop and propagation delay measurement
    - Normal closure

    The connection is owned by this session. Only one ``listen()`` may run at
    a time. Writes from other tasks (``subscribe``) are not locked here;
    callers sharing a session across tasks synchronise those themselves.
    Observer calls are serialised through a single lock so reports never
    interleave.
    """

    def __init__(
        self,
        on_message: MessageHandler | None = None,
        open_timeout: float = 10.0,
        connector: Connector | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize stream session

        Args:
            on_message: Observer called with every decoded message (sync or
                async). Defaults to a loguru report.
            open_timeout: Seconds allowed for connect + handshakes
            connector: Coroutine opening the connection (tests inject fakes)
            clock: Local clock in milliseconds since epoch
        """
        self._on_message = on_message or log_message
        self._open_timeout = open_timeout
        self._connector = connector or open_stream
        self._clock = clock

        self._ws: StreamConnection | None = None
        self._state = StreamState.DISCONNECTED
        self._subscriptions: set[str] = set()
        self._next_id = 1
        self._listening = False
        self._report_lock = asyncio.Lock()
        self._stats = PropagationStats()

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state.is_open and self._ws is not None

    @property
    def subscriptions(self) -> frozenset[str]:
        """Active channel names"""
        return frozenset(self._subscriptions)

    @property
    def stats(self) -> PropagationStats:
        return self._stats

    @property
    def is_listening(self) -> bool:
        return self._listening

    async def connect(
        self, host: str, port: int | str, path: str = STREAM_PATH
    ) -> None:
        """Open the streaming connection to wss://host:port/path

        Raises:
            DeribitConnectionError: Resolution, TLS or socket failure, timeout
            DeribitStreamError: Handshake rejected, or already connected
        """
        if self._state is StreamState.CONNECTING or self._state.is_open:
            raise DeribitStreamError(
                f"Cannot connect while {self._state.value}"
            )

        url = stream_url(host, port, path)
        self._state = StreamState.CONNECTING
        try:
            self._ws = await self._connector(url, self._open_timeout)
        except BaseException:
            self._state = StreamState.DISCONNECTED
            self._ws = None
            raise

        self._subscriptions.clear()
        self._state = StreamState.CONNECTED
        logger.info(f"WebSocket connected to {host} : {port}")

    async def subscribe(
        self, channels: str | Iterable[str], token: str | AccessToken
    ) -> None:
        """Send one private/subscribe control message

        Does not wait for the acknowledgement; it arrives through
        ``listen()`` as a control message.

        Raises:
            DeribitValidationError: Empty token or no channels
            DeribitStreamError: Not connected
        """
        names = self._channel_list(channels)
        if not token:
            raise DeribitValidationError(
                "Subscription requires an access token"
            )

        await self._send_rpc(
            "private/subscribe",
            {"access_token": str(token), "channels": names},
        )
        self._subscriptions.update(names)
        self._state = StreamState.SUBSCRIBED
        logger.info(f"Subscribed to channel: {', '.join(names)}")

    async def unsubscribe(
        self, channels: str | Iterable[str], token: str | AccessToken
    ) -> None:
        """Send one private/unsubscribe control message"""
        names = self._channel_list(channels)
        if not token:
            raise DeribitValidationError(
                "Unsubscription requires an access token"
            )

        await self._send_rpc(
            "private/unsubscribe",
            {"access_token": str(token), "channels": names},
        )
        self._subscriptions.difference_update(names)
        if not self._subscriptions:
            self._state = StreamState.CONNECTED
        logger.info(f"Unsubscribed from channel: {', '.join(names)}")

    async def listen(self) -> None:
        """Receive loop

        Runs until the connection fails or ``close()`` is called. Frames are
        handled strictly in arrival order.

        Raises:
            DeribitStreamError: Not connected, or another listen() is running
        """
        if self._listening:
            raise DeribitStreamError("listen() is already running")
        if not self.is_connected:
            raise DeribitStreamError("Not connected - call connect() first")

        ws = self._ws
        self._listening = True
        try:
            while True:
                try:
                    frame = await ws.recv()  # type: ignore[union-attr]
                except ConnectionClosed as e:
                    if self._state is StreamState.CLOSED:
                        logger.info("Stream closed, receive loop exiting")
                    else:
                        logger.error(f"Error during WebSocket read: {e}")
                        self._state = StreamState.CLOSED
                    break
                except OSError as e:
                    logger.error(f"Error during WebSocket read: {e}")
                    self._state = StreamState.CLOSED
                    break

                await self._handle_frame(frame)
        finally:
            self._listening = False

    async def close(self) -> None:
        """Send a normal closure frame if open; safe to call repeatedly"""
        if self._ws is None or self._state is StreamState.CLOSED:
            return

        self._state = StreamState.CLOSED
        self._subscriptions.clear()
        try:
            await self._ws.close(code=NORMAL_CLOSURE)
        except OSError as e:
            logger.warning(f"Error while closing WebSocket: {e}")
        logger.info("WebSocket connection closed.")

    async def _send_rpc(self, method: str, params: dict) -> int:
        if not self.is_connected:
            raise DeribitStreamError("Not connected - call connect() first")

        message_id = self._next_id
        self._next_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": message_id,
            "method": method,
            "params": params,
        }
        await self._ws.send(json.dumps(payload))  # type: ignore[union-attr]
        return message_id

    async def _handle_frame(self, frame: str | bytes) -> None:
        received_at = self._clock()
        try:
            payload = json.loads(frame)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Dropping undecodable frame: {e}")
            return

        message = parse_stream_message(payload, received_at)

        async with self._report_lock:
            if (
                isinstance(message, DataUpdate)
                and message.propagation_delay_ms is not None
            ):
                self._stats.record(message.propagation_delay_ms)
                logger.info(
                    f"Propagation delay: {message.propagation_delay_ms} ms"
                )
            try:
                result = self._on_message(message)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Stream observer failed")

    @staticmethod
    def _channel_list(channels: str | Iterable[str]) -> list[str]:
        names = [channels] if isinstance(channels, str) else list(channels)
        if not names:
            raise DeribitValidationError("At least one channel is required")
        return names

