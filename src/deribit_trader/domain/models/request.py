"""Request domain model"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class HttpMethod(Enum):
    """HTTP transport method used to carry a request"""

    GET = "GET"
    POST = "POST"


@dataclass(frozen=True)
class Request:
    """A single request-response call against the exchange

    Attributes:
        path: Endpoint path, e.g. "/api/v2/private/buy"
        params: Flat parameter mapping (order irrelevant)
        mutating: True when the call changes exchange-side state
        requires_auth: True when a bearer token must accompany the call
        method: Transport method. Deribit endpoints, mutating ones included,
            are called with GET and query-string parameters.
    """

    path: str
    params: Mapping[str, Any] = field(default_factory=dict)
    mutating: bool = False
    requires_auth: bool = False
    method: HttpMethod = HttpMethod.GET

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def rpc_method(self) -> str:
        """JSON-RPC method name, e.g. "private/buy" """
        return self.path.removeprefix("/api/v2/")

    def __repr__(self) -> str:
        keys = sorted(self.params)
        return (
            f"Request({self.method.value} {self.path}, params={keys}, "
            f"mutating={self.mutating}, requires_auth={self.requires_auth})"
        )
