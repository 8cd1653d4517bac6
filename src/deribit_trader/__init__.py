"""Deribit trading client: session and streaming core"""

from deribit_trader.core.config import Config
from deribit_trader.infrastructure.exchange.deribit.facade import DeribitClient

__all__ = ["Config", "DeribitClient"]
