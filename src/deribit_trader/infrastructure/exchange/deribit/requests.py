"""DeribitRequestClient - request-response calls and reply classification"""

import json
import time
from typing import Any

import httpx
from loguru import logger

from deribit_trader.domain.models import (
    ErrorKind,
    Failure,
    HttpMethod,
    Request,
    Response,
    Success,
)

from .transport import build_http_client


def encode_query_value(value: Any) -> str:
    """Serialize one parameter for the query string

    Strings pass through unchanged, everything else is JSON-encoded so
    booleans become ``true``/``false`` and numbers keep their JSON form.
    """
    if isinstance(value, str):
        return value
    return json.dumps(value)


def encode_query(params: dict[str, Any] | Any) -> dict[str, str]:
    return {key: encode_query_value(value) for key, value in params.items()}


class DeribitRequestClient:
    """Low-level HTTP request client

    Responsibilities:
    - Query string / JSON body serialization
    - Bearer authorization header
    - Reply classification into Success / Failure

    Never raises for a remote failure: transport errors, undecodable replies
    and exchange errors all come back as ``Failure``. Holds no per-call state,
    so concurrent tasks may share one instance.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        connect_timeout: float | None = None,
    ) -> None:
        """Initialize request client

        Args:
            base_url: Exchange base URL, e.g. "https://test.deribit.com"
            timeout: Per-request timeout in seconds
            connect_timeout: Connect timeout in seconds
        """
        self._base_url = base_url
        self._timeout = timeout
        self._connect_timeout = connect_timeout
        self._http_client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_http_client(self, client: httpx.AsyncClient) -> None:
        """Set the HTTP client (for testing or external management)"""
        self._http_client = client

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = build_http_client(
                self._base_url, self._timeout, self._connect_timeout
            )
        return self._http_client

    async def aclose(self) -> None:
        """Release pooled connections"""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def execute(
        self, request: Request, token: str | None = None
    ) -> Response:
        """Dispatch one request and classify the reply

        Args:
            request: The call to make
            token: Bearer token; the Authorization header is only sent
                when one is supplied

        Returns:
            Success with the ``result`` payload, or Failure describing a
            validation, transport, protocol or exchange error
        """
        if request.requires_auth and not token:
            logger.error(
                f"Rejected {request.rpc_method}: access token required"
            )
            return Failure(
                kind=ErrorKind.VALIDATION,
                message=f"{request.rpc_method} requires an access token",
            )

        headers = {"Authorization": f"Bearer {token}"} if token else {}

        if request.method is HttpMethod.GET:
            kwargs: dict[str, Any] = {"params": encode_query(request.params)}
        else:
            kwargs = {"json": dict(request.params)}

        logger.debug(f"{request.method.value} {request.path}")
        started = time.perf_counter()
        try:
            http_response = await self._client().request(
                request.method.value, request.path, headers=headers, **kwargs
            )
        except httpx.RequestError as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(f"Transport error on {request.rpc_method}: {e!r}")
            return Failure(
                kind=ErrorKind.TRANSPORT,
                message=f"{type(e).__name__}: {e}",
                elapsed_ms=elapsed_ms,
            )
        elapsed_ms = (time.perf_counter() - started) * 1000

        return self._classify(request, http_response, elapsed_ms)

    def _classify(
        self,
        request: Request,
        http_response: httpx.Response,
        elapsed_ms: float,
    ) -> Response:
        try:
            body = http_response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(
                f"Undecodable reply to {request.rpc_method} "
                f"(status {http_response.status_code}): {e}"
            )
            return Failure(
                kind=ErrorKind.PROTOCOL,
                message=(
                    "Undecodable reply "
                    f"(status {http_response.status_code}): {e}"
                ),
                data=http_response.text,
                elapsed_ms=elapsed_ms,
            )

        if not isinstance(body, dict):
            logger.error(
                f"Unexpected reply shape for {request.rpc_method}: {body!r}"
            )
            return Failure(
                kind=ErrorKind.PROTOCOL,
                message="Reply is not a JSON object",
                data=body,
                elapsed_ms=elapsed_ms,
            )

        error = body.get("error")
        if error is not None:
            return self._exchange_failure(request, error, elapsed_ms)

        if "result" in body:
            logger.debug(
                f"{request.rpc_method} succeeded in {elapsed_ms:.1f} ms"
            )
            return Success(
                result=body["result"], raw=body, elapsed_ms=elapsed_ms
            )

        logger.error(f"Reply to {request.rpc_method} has no result or error")
        return Failure(
            kind=ErrorKind.PROTOCOL,
            message="Reply has neither result nor error",
            data=body,
            elapsed_ms=elapsed_ms,
        )

    def _exchange_failure(
        self, request: Request, error: Any, elapsed_ms: float
    ) -> Failure:
        if isinstance(error, dict):
            code = error.get("code")
            message = str(error.get("message", "unknown error"))
            data = error.get("data")
        else:
            code, message, data = None, str(error), None

        logger.warning(
            f"Exchange error on {request.rpc_method}: [{code}] {message}"
        )
        return Failure(
            kind=ErrorKind.EXCHANGE,
            message=message,
            code=code,
            data=data,
            elapsed_ms=elapsed_ms,
        )

    def __repr__(self) -> str:
        return f"DeribitRequestClient(base_url={self._base_url!r})"

