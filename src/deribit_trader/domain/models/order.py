"""Order domain model

Orders are never cached locally; these types only describe what is sent.
"""

from enum import Enum


class OrderKind(Enum):
    """Deribit order types"""

    LIMIT = "limit"
    MARKET = "market"
    STOP_LIMIT = "stop_limit"
    STOP_MARKET = "stop_market"
    TAKE_LIMIT = "take_limit"
    TAKE_MARKET = "take_market"
    MARKET_LIMIT = "market_limit"
    TRAILING_STOP = "trailing_stop"

    @property
    def is_limit_style(self) -> bool:
        """True when the order rests at a price and needs one"""
        return self in (
            OrderKind.LIMIT,
            OrderKind.STOP_LIMIT,
            OrderKind.TAKE_LIMIT,
        )
