"""Pytest fixtures for Deribit exchange unit tests"""

import asyncio
import json
from collections.abc import Callable

import httpx
import pytest
import pytest_asyncio
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close

from deribit_trader.domain.models import Request, Response, Success
from deribit_trader.infrastructure.exchange.deribit.requests import (
    DeribitRequestClient,
)
from deribit_trader.infrastructure.exchange.deribit.stream import (
    DeribitStreamSession,
)
from deribit_trader.infrastructure.exchange.deribit.transport import (
    build_http_client,
)

BASE_URL = "https://test.deribit.com"


class RecordingGateway:
    """Gateway double that records requests and replays queued responses"""

    def __init__(self, *responses: Response) -> None:
        self.calls: list[tuple[Request, str | None]] = []
        self._responses = list(responses)

    def queue(self, *responses: Response) -> None:
        self._responses.extend(responses)

    async def execute(
        self, request: Request, token: str | None = None
    ) -> Response:
        self.calls.append((request, token))
        if self._responses:
            return self._responses.pop(0)
        return Success(result={})

    @property
    def last_request(self) -> Request:
        return self.calls[-1][0]

    @property
    def last_token(self) -> str | None:
        return self.calls[-1][1]


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection"""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.close_calls: list[int] = []
        self._incoming: asyncio.Queue = asyncio.Queue()

    def feed(self, frame: str | bytes | dict | BaseException) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self._incoming.put_nowait(frame)

    def fail(self) -> None:
        """Simulate the peer dropping the connection"""
        self.feed(ConnectionClosedError(None, None))

    @property
    def sent_json(self) -> list[dict]:
        return [json.loads(message) for message in self.sent]

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def recv(self) -> str | bytes:
        item = await self._incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append(code)
        self.feed(
            ConnectionClosedOK(Close(code, reason), Close(code, reason), True)
        )


class MockExchange:
    """Routes httpx requests by path to canned JSON replies"""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def reply(self, path: str, body: dict, status_code: int = 200) -> None:
        self.routes[path] = lambda request: httpx.Response(
            status_code, json=body
        )

    def route(
        self, path: str, handler: Callable[[httpx.Request], httpx.Response]
    ) -> None:
        self.routes[path] = handler

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(
                404,
                json={"error": {"code": -32601, "message": "Method not found"}},
            )
        return route(request)

    def client(self) -> httpx.AsyncClient:
        return build_http_client(
            BASE_URL, 5.0, transport=httpx.MockTransport(self.handler)
        )


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def mock_exchange() -> MockExchange:
    return MockExchange()


@pytest_asyncio.fixture
async def request_client(mock_exchange):
    """DeribitRequestClient wired to the mock exchange"""
    client = DeribitRequestClient(BASE_URL, timeout=5.0)
    client.set_http_client(mock_exchange.client())
    yield client
    await client.aclose()


@pytest.fixture
def fake_ws() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def connector(fake_ws):
    """Connector returning the fake WebSocket and recording connect calls"""

    async def _connect(url: str, open_timeout: float) -> FakeWebSocket:
        _connect.calls.append((url, open_timeout))
        return fake_ws

    _connect.calls = []
    return _connect


@pytest.fixture
def received() -> list:
    return []


@pytest.fixture
def stream_session(connector, received) -> DeribitStreamSession:
    """Stream session over the fake WebSocket with a fixed clock"""
    return DeribitStreamSession(
        on_message=received.append,
        connector=connector,
        clock=lambda: 1_700_000_000_050,
    )
