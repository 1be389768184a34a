"""
Futures Gateway - Symbol/Contract Translation.

Maps between canonical BASE_QUOTE contract names and venue symbols,
and builds/parses the composite SYMBOL:orderId order identifier.
"""

from typing import NamedTuple, Union

from .errors import OrderIdError


CONTRACT_SEPARATOR = "_"
ORDER_ID_SEPARATOR = ":"
QUOTE_SUFFIX = "USDT"


class ParsedOrderId(NamedTuple):
    """Venue symbol and venue order id from a composite id."""

    symbol: str
    order_id: str


def contract_to_symbol(contract: str) -> str:
    """BTC_USDT -> BTCUSDT."""
    if not contract:
        return ""
    return contract.replace(CONTRACT_SEPARATOR, "", 1)


def symbol_to_contract(symbol: str) -> str:
    """
    BTCUSDT -> BTC_USDT.

    Only the USDT suffix is recognized; any other symbol is returned
    unchanged.
    """
    if not symbol:
        return ""
    if symbol.endswith(QUOTE_SUFFIX):
        return f"{symbol[:-len(QUOTE_SUFFIX)]}{CONTRACT_SEPARATOR}{QUOTE_SUFFIX}"
    return symbol


def base_asset_of(contract: str) -> str:
    """BTC_USDT -> BTC."""
    return contract.replace(f"{CONTRACT_SEPARATOR}{QUOTE_SUFFIX}", "")


def compose_order_id(symbol: str, order_id: Union[int, str]) -> str:
    """Build the public composite order id."""
    return f"{symbol}{ORDER_ID_SEPARATOR}{order_id}"


def parse_order_id(order_id: str) -> ParsedOrderId:
    """
    Split a composite order id.

    Raises:
        OrderIdError: Empty id, bare venue id, or an empty half
    """
    if not order_id:
        raise OrderIdError("Order id is required")

    if ORDER_ID_SEPARATOR not in order_id:
        raise OrderIdError(
            f"Order id must include symbol (expected format SYMBOL:orderId, received {order_id})"
        )

    symbol, _, venue_id = order_id.partition(ORDER_ID_SEPARATOR)
    if not symbol or not venue_id or ORDER_ID_SEPARATOR in venue_id:
        raise OrderIdError(f"Invalid composite order id: {order_id}")

    return ParsedOrderId(symbol=symbol, order_id=venue_id)
