"""Streaming domain models"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def now_ms() -> int:
    """Local wall clock in milliseconds since epoch"""
    return int(time.time() * 1000)


def compute_propagation_delay(server_ms: int, local_ms: int) -> int:
    """Delay between exchange event time and local receipt

    May be negative when the clocks are skewed.
    """
    return local_ms - server_ms


class BookInterval(Enum):
    """Update cadence of a book channel"""

    MS_100 = "100ms"
    RAW = "raw"
    AGG2 = "agg2"

    @classmethod
    def from_choice(cls, choice: "int | str | BookInterval") -> "BookInterval":
        """Resolve a menu choice or interval name

        1 -> 100ms, 2 -> raw, any other number -> agg2. Interval names
        ("100ms", "raw", "agg2") are accepted as well.
        """
        if isinstance(choice, BookInterval):
            return choice
        if isinstance(choice, str):
            try:
                return cls(choice)
            except ValueError:
                if not choice.strip().isdigit():
                    raise
                choice = int(choice)
        if choice == 1:
            return cls.MS_100
        if choice == 2:
            return cls.RAW
        return cls.AGG2


def book_channel(instrument: str, interval: "BookInterval | int | str") -> str:
    """Channel name for order book updates, e.g. book.BTC-PERPETUAL.100ms"""
    resolved = BookInterval.from_choice(interval)
    return f"book.{instrument}.{resolved.value}"


class StreamState(Enum):
    """StreamSession lifecycle

    DISCONNECTED -> CONNECTING -> CONNECTED -> SUBSCRIBED -> CLOSED,
    and CLOSED -> CONNECTING on reconnect.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"
    CLOSED = "closed"

    @property
    def is_open(self) -> bool:
        return self in (StreamState.CONNECTED, StreamState.SUBSCRIBED)


@dataclass(frozen=True)
class DataUpdate:
    """Subscription notification carrying channel data"""

    channel: str
    data: Any
    received_at_ms: int
    server_timestamp_ms: int | None = None
    propagation_delay_ms: int | None = None


@dataclass(frozen=True)
class ControlMessage:
    """Any non-data frame: RPC replies, heartbeats, errors"""

    payload: dict[str, Any]
    received_at_ms: int

    @property
    def message_id(self) -> int | None:
        return self.payload.get("id")

    @property
    def method(self) -> str | None:
        return self.payload.get("method")

    @property
    def error(self) -> dict[str, Any] | None:
        return self.payload.get("error")


StreamMessage = DataUpdate | ControlMessage


def _timestamp_ms(value: Any) -> int | None:
    """Server timestamp in milliseconds, or None when absent or not numeric"""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def parse_stream_message(
    payload: Any, received_at_ms: int
) -> StreamMessage:
    """Classify a decoded frame

    Frames shaped ``{"params": {"channel": ..., "data": ...}}`` are data
    updates; when ``data.timestamp`` is present the propagation delay is
    computed against ``received_at_ms``. A timestamp that is not numeric is
    treated as absent. Everything else is a control message.
    """
    if not isinstance(payload, dict):
        return ControlMessage(
            payload={"value": payload}, received_at_ms=received_at_ms
        )

    params = payload.get("params")
    if isinstance(params, dict) and "data" in params:
        data = params["data"]
        server_ms = None
        delay = None
        if isinstance(data, dict):
            server_ms = _timestamp_ms(data.get("timestamp"))
        if server_ms is not None:
            delay = compute_propagation_delay(server_ms, received_at_ms)
        return DataUpdate(
            channel=params.get("channel", ""),
            data=data,
            received_at_ms=received_at_ms,
            server_timestamp_ms=server_ms,
            propagation_delay_ms=delay,
        )

    return ControlMessage(payload=payload, received_at_ms=received_at_ms)


@dataclass
class PropagationStats:
    """Running propagation delay statistics for one stream session"""

    count: int = 0
    last_ms: int | None = None
    min_ms: int | None = None
    max_ms: int | None = None
    _total_ms: int = field(default=0, repr=False)

    def record(self, delay_ms: int) -> None:
        self.count += 1
        self.last_ms = delay_ms
        self._total_ms += delay_ms
        if self.min_ms is None or delay_ms < self.min_ms:
            self.min_ms = delay_ms
        if self.max_ms is None or delay_ms > self.max_ms:
            self.max_ms = delay_ms

    @property
    def mean_ms(self) -> float | None:
        if self.count == 0:
            return None
        return self._total_ms / self.count
