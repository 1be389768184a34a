"""
Futures Gateway - Order and Position Summaries.

Turns validated venue records into OrderSummary / PositionSummary,
converting base-asset quantities into unit counts.
"""

import logging
import time

from .numeric import safe_parse_float
from .schemas import VenueOrder, VenuePosition
from .symbols import compose_order_id, contract_to_symbol
from .types import ContractInfo, OrderStatus, OrderSummary, PositionSummary


logger = logging.getLogger(__name__)


# Venue status -> OrderStatus. Unknown statuses stay open.
ORDER_STATUS_MAP = {
    "NEW": OrderStatus.OPEN,
    "PARTIALLY_FILLED": OrderStatus.OPEN,
    "PENDING_CANCEL": OrderStatus.OPEN,
    "FILLED": OrderStatus.FINISHED,
    "CANCELED": OrderStatus.CANCELLED,
    "REJECTED": OrderStatus.CANCELLED,
    "EXPIRED": OrderStatus.CANCELLED,
    "EXPIRED_IN_MATCH": OrderStatus.CANCELLED,
}


def map_order_status(status: str) -> OrderStatus:
    """Project a venue order status onto open/finished/cancelled."""
    mapped = ORDER_STATUS_MAP.get(status or "")
    if mapped is None:
        logger.debug(f"Unknown order status {status!r}, treating as open")
        return OrderStatus.OPEN
    return mapped


def quantity_to_units(quantity: float, info: ContractInfo) -> int:
    """Base-asset quantity -> nearest whole unit count (sign kept)."""
    return int(round(quantity / info.step_size))


def build_order_summary(
    order: VenueOrder,
    contract: str,
    info: ContractInfo,
) -> OrderSummary:
    """
    Normalize one venue order.

    Args:
        order: Validated venue order
        contract: Canonical contract name
        info: Contract metadata used for unit conversion

    Returns:
        OrderSummary
    """
    size_units = quantity_to_units(safe_parse_float(order.origQty), info)
    executed_units = quantity_to_units(safe_parse_float(order.executedQty), info)
    remaining_units = max(size_units - executed_units, 0)

    fill_price = None
    if order.avgPrice is not None:
        fill_price = safe_parse_float(order.avgPrice)

    return OrderSummary(
        id=compose_order_id(contract_to_symbol(contract), order.orderId),
        status=map_order_status(order.status),
        contract=contract,
        size=size_units,
        left=remaining_units,
        executed_size=executed_units,
        price=safe_parse_float(order.price),
        fill_price=fill_price,
        side=order.side,
        order_type=order.type,
        time_in_force=order.timeInForce,
        reduce_only=bool(order.reduceOnly),
        client_order_id=order.clientOrderId,
        create_time=order.time if order.time is not None else order.updateTime,
        update_time=order.updateTime if order.updateTime is not None else order.time,
    )


def build_position_summary(
    position: VenuePosition,
    contract: str,
    info: ContractInfo,
) -> PositionSummary:
    """Normalize one positionRisk row; size stays signed."""
    margin = position.positionInitialMargin
    if margin is None:
        margin = position.isolatedMargin

    return PositionSummary(
        contract=contract,
        size=quantity_to_units(safe_parse_float(position.positionAmt), info),
        entry_price=safe_parse_float(position.entryPrice),
        mark_price=safe_parse_float(position.markPrice),
        leverage=int(safe_parse_float(position.leverage, 1)),
        liquidation_price=safe_parse_float(position.liquidationPrice),
        unrealised_pnl=safe_parse_float(position.unRealizedProfit),
        realised_pnl=safe_parse_float(position.realizedProfit),
        margin=safe_parse_float(margin),
        margin_type=position.marginType or "CROSSED",
        timestamp=position.updateTime or int(time.time() * 1000),
    )
