"""Consolidated exceptions for the Deribit trading client.

All custom exceptions are defined here to provide a single source of truth
for error handling across the client.
"""

from typing import Any


class DeribitError(Exception):
    """Base exception for deribit_trader errors"""

    pass


class DeribitClientError(DeribitError):
    """Base exception for Deribit client errors"""

    pass


class DeribitTransportError(DeribitClientError):
    """Raised when the exchange could not be reached (DNS, TLS, timeout)"""

    pass


class DeribitConnectionError(DeribitTransportError):
    """Raised when a connection to the exchange fails"""

    pass


class DeribitProtocolError(DeribitClientError):
    """Raised when the exchange answered with a malformed payload"""

    pass


class DeribitExchangeError(DeribitClientError):
    """Raised for a well-formed error payload returned by the exchange"""

    def __init__(
        self, message: str, code: int | None = None, data: Any = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code is None:
            return super().__str__()
        return f"[{self.code}] {super().__str__()}"


class DeribitValidationError(DeribitClientError):
    """Raised when a call is rejected locally before reaching the exchange"""

    pass


class DeribitAuthenticationError(DeribitClientError):
    """Raised when credential exchange fails

    Attributes:
        failure: The failed response that caused the error, if any
    """

    def __init__(self, message: str, failure: Any = None) -> None:
        super().__init__(message)
        self.failure = failure


class DeribitStreamError(DeribitClientError):
    """Raised when the streaming session is misused or its handshake fails"""

    pass


class ConfigurationError(DeribitError, ValueError):
    """Raised when configuration is invalid or missing"""

    pass
