"""Domain models"""

from .credentials import AccessToken, Credentials
from .order import OrderKind
from .request import HttpMethod, Request
from .response import ErrorKind, Failure, Response, Success
from .stream import (
    BookInterval,
    ControlMessage,
    DataUpdate,
    PropagationStats,
    StreamMessage,
    StreamState,
    book_channel,
    compute_propagation_delay,
    parse_stream_message,
)

__all__ = [
    "AccessToken",
    "Credentials",
    "OrderKind",
    "HttpMethod",
    "Request",
    "ErrorKind",
    "Failure",
    "Response",
    "Success",
    "BookInterval",
    "ControlMessage",
    "DataUpdate",
    "PropagationStats",
    "StreamMessage",
    "StreamState",
    "book_channel",
    "compute_propagation_delay",
    "parse_stream_message",
]
