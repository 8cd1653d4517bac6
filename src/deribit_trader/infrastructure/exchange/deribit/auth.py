"""DeribitAuthManager - credential exchange and access token lifecycle"""

from datetime import datetime

from loguru import logger

from deribit_trader.domain.models import (
    AccessToken,
    Credentials,
    ErrorKind,
    Failure,
    Request,
    Response,
)
from deribit_trader.infrastructure.exchange.protocols import RequestGateway
from deribit_trader.shared.constants import AUTHORIZATION_ERROR_CODES
from deribit_trader.shared.exceptions import DeribitAuthenticationError

AUTH_PATH = "/api/v2/public/auth"


def is_authorization_error(response: Response) -> bool:
    """True when the exchange rejected a call for lack of authorization"""
    return (
        isinstance(response, Failure)
        and response.kind is ErrorKind.EXCHANGE
        and response.code in AUTHORIZATION_ERROR_CODES
    )


class DeribitAuthManager:
    """Manages the access token for Deribit private endpoints

    Responsibilities:
    - Credential exchange via public/auth (client_credentials grant)
    - Token refresh via the refresh_token grant
    - Expiry checking

    This is the only writer of the current token; everything else reads it.
    No retries are attempted here.
    """

    def __init__(
        self, credentials: Credentials, request_client: RequestGateway
    ) -> None:
        """Initialize auth manager

        Args:
            credentials: Client id and secret
            request_client: Gateway used for the public/auth call
        """
        self._credentials = credentials
        self._request_client = request_client
        self._token: AccessToken | None = None

    @property
    def token(self) -> AccessToken | None:
        """Get current access token"""
        return self._token

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    async def authenticate(
        self, credentials: Credentials | None = None
    ) -> AccessToken:
        """Exchange client credentials for a new access token

        Args:
            credentials: Overrides the credentials given at construction

        Returns:
            The new token, also stored as the current token

        Raises:
            DeribitAuthenticationError: If the exchange returns an error or no
                access token
        """
        creds = credentials or self._credentials
        logger.info(f"Authenticating client {creds.client_id}...")
        request = Request(
            path=AUTH_PATH,
            params={
                "grant_type": "client_credentials",
                "client_id": creds.client_id,
                "client_secret": creds.client_secret,
            },
        )
        return await self._exchange(request)

    async def refresh(self) -> AccessToken:
        """Renew the token with the refresh_token grant

        Falls back to client credentials when no refresh token is held.

        Raises:
            DeribitAuthenticationError: If the exchange refuses the grant
        """
        if self._token is None or not self._token.refresh_token:
            return await self.authenticate()

        logger.info("Refreshing access token...")
        request = Request(
            path=AUTH_PATH,
            params={
                "grant_type": "refresh_token",
                "refresh_token": self._token.refresh_token,
            },
        )
        return await self._exchange(request)

    async def ensure_token(self, skew_seconds: int = 60) -> AccessToken:
        """Return a usable token, authenticating or refreshing if needed"""
        if self._token is None:
            return await self.authenticate()
        if self._token.is_expiring(skew_seconds):
            logger.info("Access token expiring soon - refreshing")
            return await self.refresh()
        return self._token

    def invalidate(self) -> None:
        """Forget the current token so the next call re-authenticates"""
        if self._token is not None:
            logger.warning("Access token invalidated")
        self._token = None

    async def _exchange(self, request: Request) -> AccessToken:
        response = await self._request_client.execute(request)

        if isinstance(response, Failure):
            logger.error(
                f"Failed to authenticate: {response.kind.value} "
                f"[{response.code}] {response.message}"
            )
            raise DeribitAuthenticationError(
                f"Authentication failed: {response.message}", response
            )

        result = response.result
        if not isinstance(result, dict) or not result.get("access_token"):
            failure = Failure(
                kind=ErrorKind.PROTOCOL,
                message="Auth reply carries no access_token",
                data=result,
                elapsed_ms=response.elapsed_ms,
            )
            logger.error(f"Failed to authenticate: {result!r}")
            raise DeribitAuthenticationError(failure.message, failure)

        self._token = AccessToken.from_result(result)
        if self._token.expires_at_ms is not None:
            expiration_dt = datetime.fromtimestamp(
                self._token.expires_at_ms / 1000
            )
            logger.info(f"Authenticated, token expires at {expiration_dt}")
        else:
            logger.info("Authenticated")
        return self._token
