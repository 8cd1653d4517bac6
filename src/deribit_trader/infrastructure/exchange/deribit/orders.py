"""Deribit order management operations"""

from typing import Any

from loguru import logger

from deribit_trader.domain.models import (
    AccessToken,
    ErrorKind,
    Failure,
    OrderKind,
    Request,
    Response,
)
from deribit_trader.infrastructure.exchange.protocols import (
    OrderManager,
    RequestGateway,
)

BUY_PATH = "/api/v2/private/buy"
SELL_PATH = "/api/v2/private/sell"
EDIT_PATH = "/api/v2/private/edit"
CANCEL_PATH = "/api/v2/private/cancel"
OPEN_ORDERS_PATH = "/api/v2/private/get_open_orders"
ORDER_STATE_PATH = "/api/v2/private/get_order_state"
ORDER_BOOK_PATH = "/api/v2/public/get_order_book"


def _token_value(token: str | AccessToken | None) -> str:
    return str(token) if token else ""


def _invalid(message: str) -> Failure:
    logger.error(f"Error: {message}")
    return Failure(kind=ErrorKind.VALIDATION, message=message)


def _present(**fields: Any) -> dict[str, Any]:
    """Keep only the fields the caller actually supplied"""
    return {key: value for key, value in fields.items() if value is not None}


class DeribitOrders(OrderManager):
    """Deribit order management operations

    One method per trading action, each a single gateway call. Failures are
    returned as-is: no retries and no interpretation of exchange codes.
    """

    def __init__(self, request_client: RequestGateway) -> None:
        """Initialize orders service

        Args:
            request_client: Gateway used for every call
        """
        self.request_client = request_client

    async def place_order(
        self,
        token: str | AccessToken,
        instrument: str,
        kind: OrderKind | str,
        quantity: float,
        price: float | None = None,
    ) -> Response:
        """Place a buy order

        ``price`` is sent for limit-style orders only and ignored otherwise.
        """
        try:
            order_kind = OrderKind(kind)
        except ValueError:
            return _invalid(f"Invalid order type: {kind}")

        params: dict[str, Any] = {
            "instrument_name": instrument,
            "type": order_kind.value,
            "amount": quantity,
        }
        if order_kind.is_limit_style:
            if price is None:
                return _invalid(f"price required for {order_kind.value} orders")
            params["price"] = price

        logger.info(
            f"Placing {order_kind.value} order: buy {quantity} {instrument}"
        )
        return await self._call(BUY_PATH, params, token, mutating=True)

    async def modify_order(
        self,
        order_id: str,
        token: str | AccessToken,
        quantity: float | None = None,
        contracts: float | None = None,
        price: float | None = None,
        advanced: str | None = None,
        post_only: bool | None = None,
        reduce_only: bool | None = None,
    ) -> Response:
        """Edit an open order

        At least one of ``quantity``/``contracts`` is required, and they must
        be equal when both are given. Only supplied fields are sent.
        """
        if quantity is None and contracts is None:
            return _invalid("Either 'amount' or 'contracts' must be provided.")
        if (
            quantity is not None
            and contracts is not None
            and float(quantity) != float(contracts)
        ):
            return _invalid(
                "'amount' and 'contracts' must match if both are provided."
            )

        params = {"order_id": order_id} | _present(
            amount=quantity,
            contracts=contracts,
            price=price,
            advanced=advanced,
            post_only=post_only,
            reduce_only=reduce_only,
        )

        logger.info(f"Modifying order {order_id}")
        return await self._call(EDIT_PATH, params, token, mutating=True)

    async def sell_order(
        self,
        token: str | AccessToken,
        instrument: str,
        quantity: float | None = None,
        contracts: float | None = None,
        price: float | None = None,
        kind: OrderKind | str | None = None,
        trigger: str | None = None,
        trigger_price: float | None = None,
    ) -> Response:
        """Place a sell order

        Only supplied fields are sent; trigger semantics are left to the
        exchange.
        """
        if isinstance(kind, OrderKind):
            kind = kind.value

        params = {"instrument_name": instrument} | _present(
            amount=quantity,
            contracts=contracts,
            price=price,
            type=kind,
            trigger=trigger,
            trigger_price=trigger_price,
        )

        logger.info(f"Selling {instrument}")
        return await self._call(SELL_PATH, params, token, mutating=True)

    async def cancel_order(
        self, order_id: str, token: str | AccessToken
    ) -> Response:
        """Cancel specific order"""
        logger.info(f"Cancelling order {order_id}")
        return await self._call(
            CANCEL_PATH, {"order_id": order_id}, token, mutating=True
        )

    async def get_open_orders(self, token: str | AccessToken) -> Response:
        """Query all open orders"""
        return await self._call(OPEN_ORDERS_PATH, {}, token)

    async def get_order_state(
        self, order_id: str, token: str | AccessToken
    ) -> Response:
        """Query the state of one order"""
        return await self._call(ORDER_STATE_PATH, {"order_id": order_id}, token)

    async def get_order_book(self, instrument: str) -> Response:
        """Query the public order book for an instrument"""
        request = Request(
            path=ORDER_BOOK_PATH, params={"instrument_name": instrument}
        )
        return await self.request_client.execute(request)

    async def _call(
        self,
        path: str,
        params: dict[str, Any],
        token: str | AccessToken,
        mutating: bool = False,
    ) -> Response:
        request = Request(
            path=path, params=params, mutating=mutating, requires_auth=True
        )
        return await self.request_client.execute(
            request, token=_token_value(token)
        )
