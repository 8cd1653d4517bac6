"""Credential and access token domain models"""

import time
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Credentials:
    """Client credentials exchanged for an access token"""

    client_id: str
    client_secret: str = field(repr=False)


@dataclass(frozen=True)
class AccessToken:
    """Access token issued by public/auth

    Attributes:
        value: Opaque bearer token
        expires_at_ms: Expiry in milliseconds since epoch, if sent
        refresh_token: Token usable with grant_type=refresh_token
        scope: Scope string granted by the exchange
        token_type: Token type, always "bearer" on Deribit
    """

    value: str = field(repr=False)
    expires_at_ms: int | None = None
    refresh_token: str | None = field(default=None, repr=False)
    scope: str | None = None
    token_type: str = "bearer"

    @classmethod
    def from_result(
        cls, result: dict[str, Any], now_ms: int | None = None
    ) -> "AccessToken":
        """Build a token from a public/auth result payload

        Args:
            result: The ``result`` object of a successful auth response
            now_ms: Issue time in milliseconds (defaults to the local clock)

        Raises:
            KeyError: If the payload has no access_token
        """
        value = result["access_token"]
        if now_ms is None:
            now_ms = int(time.time() * 1000)

        expires_in = result.get("expires_in")
        expires_at_ms = (
            now_ms + int(expires_in) * 1000 if expires_in is not None else None
        )
        return cls(
            value=value,
            expires_at_ms=expires_at_ms,
            refresh_token=result.get("refresh_token"),
            scope=result.get("scope"),
            token_type=result.get("token_type", "bearer"),
        )

    def is_expiring(self, skew_seconds: int = 60) -> bool:
        """Check if the token lapses within ``skew_seconds``

        A token without expiry metadata is never considered expiring.
        """
        if self.expires_at_ms is None:
            return False
        now_ms = int(time.time() * 1000)
        return self.expires_at_ms <= now_ms + (skew_seconds * 1000)

    def __str__(self) -> str:
        return self.value
