"""Response domain model

A response is a tagged result: ``Success`` carries the exchange's ``result``
payload, ``Failure`` carries the kind of failure plus whatever detail is
available. Callers check ``response.ok`` (or ``isinstance``) before touching
the payload, or call ``unwrap()`` to get the payload or the matching exception.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from deribit_trader.shared.exceptions import (
    DeribitClientError,
    DeribitExchangeError,
    DeribitProtocolError,
    DeribitTransportError,
    DeribitValidationError,
)


class ErrorKind(Enum):
    """Failure categories

    - TRANSPORT: no answer (connection, DNS, TLS, timeout)
    - PROTOCOL: an answer that could not be decoded or has an unknown shape
    - EXCHANGE: a well-formed error payload from the exchange
    - VALIDATION: rejected locally before any network call
    """

    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    EXCHANGE = "exchange"
    VALIDATION = "validation"

    @property
    def exception_class(self) -> type[DeribitClientError]:
        return _EXCEPTION_BY_KIND[self]


_EXCEPTION_BY_KIND: dict[ErrorKind, type[DeribitClientError]] = {
    ErrorKind.TRANSPORT: DeribitTransportError,
    ErrorKind.PROTOCOL: DeribitProtocolError,
    ErrorKind.EXCHANGE: DeribitExchangeError,
    ErrorKind.VALIDATION: DeribitValidationError,
}


@dataclass(frozen=True)
class Success:
    """Successful response

    Attributes:
        result: The ``result`` member of the exchange reply
        raw: The full decoded reply (includes usIn/usOut/testnet)
        elapsed_ms: Round-trip time of the call
    """

    result: Any
    raw: dict[str, Any] | None = None
    elapsed_ms: float | None = None

    ok = True

    def unwrap(self) -> Any:
        return self.result


@dataclass(frozen=True)
class Failure:
    """Failed response

    Attributes:
        kind: Failure category
        message: Human readable description
        code: Exchange error code (EXCHANGE failures only)
        data: Exchange error data, passed through verbatim
        elapsed_ms: Round-trip time, when a call was actually made
    """

    kind: ErrorKind
    message: str
    code: int | None = None
    data: Any = None
    elapsed_ms: float | None = None

    ok = False

    def to_exception(self) -> DeribitClientError:
        """Build the exception matching this failure"""
        if self.kind is ErrorKind.EXCHANGE:
            return DeribitExchangeError(self.message, self.code, self.data)
        return self.kind.exception_class(self.message)

    def unwrap(self) -> Any:
        raise self.to_exception()


Response = Success | Failure
