"""Transport layer - HTTPS client and secure WebSocket connections"""

import logging
import re

import httpx
from loguru import logger
from websockets import connect as ws_connect
from websockets.exceptions import InvalidHandshake, InvalidURI

from deribit_trader.infrastructure.exchange.protocols import StreamConnection
from deribit_trader.shared.constants import STREAM_PATH
from deribit_trader.shared.exceptions import (
    DeribitConnectionError,
    DeribitStreamError,
)

_SECRET_QUERY = re.compile(r"((?:client_secret|refresh_token)=)[^&\s]+")
_SECRET_JSON = re.compile(
    r'("(?:access_token|refresh_token|client_secret)"\s*:\s*")[^"]*"'
)

# Deribit book snapshots on raw channels can exceed the 1 MiB default
MAX_FRAME_SIZE = 4 * 1024 * 1024


class _LoguruHandler(logging.Handler):
    """Bridge stdlib logging into loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(
            level, record.getMessage()
        )


_logging_bridge_installed = False


def install_logging_bridge() -> None:
    """Bridge stdlib logging used by httpx/websockets into loguru once."""
    global _logging_bridge_installed
    if _logging_bridge_installed:
        return

    handler = _LoguruHandler()
    # httpx logs full URLs at INFO; the event hooks log a masked copy instead
    levels = {"httpx": logging.WARNING, "websockets": logging.INFO}
    for name, level in levels.items():
        std_logger = logging.getLogger(name)
        std_logger.setLevel(level)
        std_logger.addHandler(handler)
        std_logger.propagate = False

    _logging_bridge_installed = True


def mask_secrets(text: str) -> str:
    """Hide secret query values and JSON token members"""
    text = _SECRET_QUERY.sub(r"\1***", text)
    return _SECRET_JSON.sub(r'\1***"', text)


async def _log_httpx_request(request: httpx.Request) -> None:
    """Log outbound httpx requests with headers (auth masked)."""
    headers = {
        k: ("***" if k.lower() == "authorization" else v)
        for k, v in request.headers.items()
    }
    url = mask_secrets(str(request.url))
    logger.debug(f"HTTPX request: {request.method} {url} {headers}")


async def _log_httpx_response(response: httpx.Response) -> None:
    """Log httpx responses including status and body."""
    try:
        await response.aread()
        body = mask_secrets(response.text)
    except httpx.HTTPError:
        body = "<unreadable body>"
    logger.debug(
        f"HTTPX response: status={response.status_code} "
        f"url={mask_secrets(str(response.url))} body={body}"
    )


def build_http_client(
    base_url: str,
    timeout: float,
    connect_timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient with request/response logging hooks

    Args:
        base_url: Exchange base URL, e.g. "https://test.deribit.com"
        timeout: Read/write/pool timeout in seconds
        connect_timeout: Connect timeout in seconds (defaults to ``timeout``)
        transport: Optional transport override (tests use httpx.MockTransport)
    """
    install_logging_bridge()
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout, connect=connect_timeout or timeout),
        transport=transport,
        headers={"Content-Type": "application/json"},
        event_hooks={
            "request": [_log_httpx_request],
            "response": [_log_httpx_response],
        },
    )


def stream_url(host: str, port: int | str, path: str = STREAM_PATH) -> str:
    """WSS URL for a host and port"""
    return f"wss://{host}:{port}{path}"


async def open_stream(
    url: str, open_timeout: float = 10.0
) -> StreamConnection:
    """Open a TLS WebSocket connection

    Resolution, TLS negotiation and the WebSocket handshake all happen here.

    Raises:
        DeribitConnectionError: DNS, socket, TLS failure or timeout
        DeribitStreamError: The server rejected the WebSocket handshake
    """
    install_logging_bridge()
    logger.info(f"Opening stream connection to {url}")
    try:
        return await ws_connect(
            url,
            open_timeout=open_timeout,
            max_size=MAX_FRAME_SIZE,
        )
    except InvalidHandshake as e:
        raise DeribitStreamError(f"Handshake rejected by {url}: {e}") from e
    except InvalidURI as e:
        raise DeribitConnectionError(f"Invalid stream URL {url}: {e}") from e
    except (OSError, TimeoutError) as e:
        raise DeribitConnectionError(
            f"Stream connection to {url} failed: {e}"
        ) from e
