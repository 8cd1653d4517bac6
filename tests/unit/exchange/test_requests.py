"""Tests for DeribitRequestClient in isolation"""

import json

import httpx
import pytest
from loguru import logger

from deribit_trader.domain.models import (
    ErrorKind,
    Failure,
    HttpMethod,
    Request,
    Success,
)
from deribit_trader.infrastructure.exchange.deribit.requests import (
    DeribitRequestClient,
    encode_query,
)
from deribit_trader.infrastructure.exchange.protocols import RequestGateway
from deribit_trader.shared.exceptions import (
    DeribitExchangeError,
    DeribitTransportError,
)

BOOK_PATH = "/api/v2/public/get_order_book"
BUY_PATH = "/api/v2/private/buy"


@pytest.mark.unit
def test_request_client_initialization():
    """Test that the HTTP client is created lazily"""
    client = DeribitRequestClient("https://test.deribit.com")

    assert client.base_url == "https://test.deribit.com"
    assert isinstance(client, RequestGateway)
    assert client._http_client is None


@pytest.mark.unit
def test_encode_query_serializes_non_strings_as_json():
    """Strings pass through, numbers and booleans are JSON-encoded"""
    encoded = encode_query(
        {"instrument_name": "BTC-PERPETUAL", "amount": 10.0, "post_only": True}
    )

    assert encoded == {
        "instrument_name": "BTC-PERPETUAL",
        "amount": "10.0",
        "post_only": "true",
    }


@pytest.mark.unit
@pytest.mark.asyncio
async def test_success_reply_returns_result(request_client, mock_exchange):
    """A result payload comes back as Success with timing"""
    mock_exchange.reply(
        BOOK_PATH,
        {"jsonrpc": "2.0", "result": {"bids": [], "asks": []}, "testnet": True},
    )

    response = await request_client.execute(
        Request(path=BOOK_PATH, params={"instrument_name": "BTC-PERPETUAL"})
    )

    assert isinstance(response, Success)
    assert response.ok is True
    assert response.result == {"bids": [], "asks": []}
    assert response.raw["testnet"] is True
    assert response.elapsed_ms is not None and response.elapsed_ms >= 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_parameters_go_to_query_string(request_client, mock_exchange):
    """GET requests carry parameters in the query string, not the body"""
    mock_exchange.reply(BUY_PATH, {"result": {}})

    await request_client.execute(
        Request(
            path=BUY_PATH,
            params={"instrument_name": "BTC-PERPETUAL", "amount": 10},
            mutating=True,
            requires_auth=True,
        ),
        token="tok",
    )

    sent = mock_exchange.requests[0]
    assert sent.method == "GET"
    assert sent.url.params["instrument_name"] == "BTC-PERPETUAL"
    assert sent.url.params["amount"] == "10"
    assert sent.content == b""


@pytest.mark.unit
@pytest.mark.asyncio
async def test_post_parameters_go_to_json_body(request_client, mock_exchange):
    """POST requests carry parameters as a JSON body"""
    mock_exchange.reply(BUY_PATH, {"result": {}})

    await request_client.execute(
        Request(
            path=BUY_PATH,
            params={"amount": 10},
            method=HttpMethod.POST,
        )
    )

    sent = mock_exchange.requests[0]
    assert sent.method == "POST"
    assert json.loads(sent.content) == {"amount": 10}
    assert "amount" not in sent.url.params


@pytest.mark.unit
@pytest.mark.asyncio
async def test_bearer_header_only_with_token(request_client, mock_exchange):
    """Authorization header is sent only when a token is supplied"""
    mock_exchange.reply(BOOK_PATH, {"result": {}})

    await request_client.execute(Request(path=BOOK_PATH))
    await request_client.execute(Request(path=BOOK_PATH), token="abc")

    assert "authorization" not in mock_exchange.requests[0].headers
    assert mock_exchange.requests[1].headers["authorization"] == "Bearer abc"


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, ""])
async def test_auth_required_without_token_is_rejected_locally(
    request_client, mock_exchange, token
):
    """Private calls without a token never reach the network"""
    response = await request_client.execute(
        Request(path=BUY_PATH, requires_auth=True), token=token
    )

    assert isinstance(response, Failure)
    assert response.kind is ErrorKind.VALIDATION
    assert mock_exchange.requests == []


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc_class", [httpx.ConnectError, httpx.ReadTimeout, httpx.ConnectTimeout]
)
async def test_transport_failure_returns_transport_failure(
    request_client, mock_exchange, exc_class
):
    """Connection errors and timeouts are returned, not raised"""

    def boom(request: httpx.Request) -> httpx.Response:
        raise exc_class("network down", request=request)

    mock_exchange.route(BOOK_PATH, boom)

    response = await request_client.execute(Request(path=BOOK_PATH))

    assert isinstance(response, Failure)
    assert response.kind is ErrorKind.TRANSPORT
    assert "network down" in response.message
    with pytest.raises(DeribitTransportError):
        response.unwrap()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_undecodable_reply_is_protocol_failure(
    request_client, mock_exchange
):
    """A body that is not JSON is a protocol failure, distinct from transport"""
    mock_exchange.route(
        BOOK_PATH, lambda request: httpx.Response(502, text="<html>Bad</html>")
    )

    response = await request_client.execute(Request(path=BOOK_PATH))

    assert isinstance(response, Failure)
    assert response.kind is ErrorKind.PROTOCOL
    assert response.data == "<html>Bad</html>"


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"jsonrpc": "2.0"}, [1, 2, 3]])
async def test_unexpected_shape_is_protocol_failure(
    request_client, mock_exchange, body
):
    """JSON without result or error is a protocol failure"""
    mock_exchange.route(
        BOOK_PATH, lambda request: httpx.Response(200, json=body)
    )

    response = await request_client.execute(Request(path=BOOK_PATH))

    assert isinstance(response, Failure)
    assert response.kind is ErrorKind.PROTOCOL


@pytest.mark.unit
@pytest.mark.asyncio
async def test_exchange_error_is_passed_through(request_client, mock_exchange):
    """Exchange error payloads keep their code, message and data verbatim"""
    error = {
        "code": -32602,
        "message": "Invalid params",
        "data": {"reason": "wrong format", "param": "instrument_name"},
    }
    mock_exchange.reply(
        BOOK_PATH, {"jsonrpc": "2.0", "error": error}, status_code=400
    )

    response = await request_client.execute(Request(path=BOOK_PATH))

    assert isinstance(response, Failure)
    assert response.kind is ErrorKind.EXCHANGE
    assert response.code == -32602
    assert response.message == "Invalid params"
    assert response.data == error["data"]
    with pytest.raises(DeribitExchangeError) as exc_info:
        response.unwrap()
    assert exc_info.value.code == -32602


@pytest.mark.unit
@pytest.mark.asyncio
async def test_httpx_hooks_log_with_secrets_masked(
    request_client, mock_exchange
):
    """Request/response logs flow into loguru without the client secret"""
    messages: list[str] = []
    sink_id = logger.add(messages.append, format="{message}", level="DEBUG")
    mock_exchange.reply(
        "/api/v2/public/auth",
        {
            "jsonrpc": "2.0",
            "result": {
                "access_token": "issued_access",
                "refresh_token": "issued_refresh",
                "expires_in": 900,
            },
        },
    )

    try:
        await request_client.execute(
            Request(
                path="/api/v2/public/auth",
                params={"client_id": "abc", "client_secret": "hunter2"},
            )
        )
    finally:
        logger.remove(sink_id)

    assert any("HTTPX request: GET" in m for m in messages)
    assert any("status=200" in m for m in messages)
    assert any("client_secret=***" in m for m in messages)
    assert any('"access_token"' in m and "***" in m for m in messages)
    for secret in ("hunter2", "issued_access", "issued_refresh"):
        assert not any(secret in m for m in messages)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_aclose_releases_http_client(mock_exchange):
    """aclose() closes and forgets the pooled client"""
    client = DeribitRequestClient("https://test.deribit.com")
    client.set_http_client(mock_exchange.client())

    await client.aclose()
    await client.aclose()

    assert client._http_client is None
