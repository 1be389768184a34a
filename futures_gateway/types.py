"""
Futures Gateway - Types.

============================================================
PURPOSE
============================================================
Value types exchanged with the upstream strategy.

UNITS:
    Order sizes are integer unit counts. One unit is one
    step of the contract (quantity = units * step_size).

LIFECYCLE:
    ContractInfo lives in the contract cache until cleared.
    Every other type is rebuilt on each call.

============================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple


# ============================================================
# ENUMS
# ============================================================

class OrderStatus(str, Enum):
    """Closed three-state projection of venue order statuses."""

    OPEN = "open"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class OrderSide(Enum):
    """Order side."""

    BUY = "BUY"
    SELL = "SELL"


class OrderType(Enum):
    """Order type submitted by the gateway."""

    MARKET = "MARKET"
    LIMIT = "LIMIT"


# ============================================================
# CONTRACT METADATA
# ============================================================

@dataclass(frozen=True)
class ContractInfo:
    """Trading rules for one perpetual contract."""

    contract: str
    """Canonical name, e.g. BTC_USDT."""

    symbol: str
    """Venue name, e.g. BTCUSDT."""

    step_size: float
    """Smallest quantity increment in base asset."""

    tick_size: float
    """Smallest price increment."""

    quanto_multiplier: float
    """Base asset per unit. Always equal to step_size."""

    order_size_min: int
    """Minimum order size in units (inclusive)."""

    order_size_max: int
    """Maximum order size in units (inclusive)."""

    min_notional: float
    """Minimum price * quantity."""

    price_precision: int
    quantity_precision: int
    base_asset: str
    quote_asset: str

    is_fallback: bool = False
    """True when synthesized from the static table."""

    def __post_init__(self):
        if not self.step_size > 0:
            raise ValueError(f"step_size must be positive for {self.contract}")
        if not self.tick_size > 0:
            raise ValueError(f"tick_size must be positive for {self.contract}")
        if self.order_size_min > self.order_size_max:
            raise ValueError(
                f"order_size_min {self.order_size_min} exceeds "
                f"order_size_max {self.order_size_max} for {self.contract}"
            )
        if self.quanto_multiplier != self.step_size:
            raise ValueError(f"quanto_multiplier must equal step_size for {self.contract}")


# ============================================================
# ORDERS AND POSITIONS
# ============================================================

@dataclass(frozen=True)
class OrderSummary:
    """Normalized view of one venue order."""

    id: str
    """Composite id SYMBOL:orderId."""

    status: OrderStatus
    contract: str

    size: int
    """Original size in units (magnitude, direction in side)."""

    left: int
    """Unfilled units, never negative."""

    executed_size: int
    price: float
    fill_price: Optional[float] = None
    side: Optional[str] = None
    order_type: Optional[str] = None
    time_in_force: Optional[str] = None
    reduce_only: bool = False
    client_order_id: Optional[str] = None
    create_time: Optional[int] = None
    update_time: Optional[int] = None


@dataclass(frozen=True)
class PositionSummary:
    """Normalized view of one open position."""

    contract: str

    size: int
    """Signed size in units (negative for short)."""

    entry_price: float
    mark_price: float
    leverage: int
    liquidation_price: float
    unrealised_pnl: float
    realised_pnl: float
    margin: float
    margin_type: str
    timestamp: int


# ============================================================
# MARKET AND ACCOUNT DATA
# ============================================================

@dataclass(frozen=True)
class FuturesTicker:
    """Last trade and mark price snapshot."""

    contract: str
    last: float
    mark_price: float
    index_price: float
    funding_rate: float
    time: int


@dataclass(frozen=True)
class Candle:
    """One kline."""

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    quote_volume: float


@dataclass(frozen=True)
class FuturesAccount:
    """USDT futures wallet summary."""

    currency: str
    total: float
    available: float
    position_margin: float
    order_margin: float
    unrealised_pnl: float
    realised_pnl: float
    margin_balance: float
    max_withdraw_amount: float
    assets: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class OrderBook:
    """Top of the order book as (price, quantity) levels."""

    contract: str
    bids: List[Tuple[float, float]]
    asks: List[Tuple[float, float]]
    last_update_id: Optional[int] = None


@dataclass(frozen=True)
class FundingRate:
    """Most recent funding rate entry."""

    contract: str
    funding_rate: float
    funding_time: int
    mark_price: Optional[float] = None


@dataclass(frozen=True)
class LeverageSetting:
    """Leverage accepted by the venue."""

    contract: str
    leverage: int
    max_notional_value: Optional[float] = None


# ============================================================
# QUANTO PRELOAD
# ============================================================

@dataclass
class PreloadResult:
    """Outcome of a quanto multiplier warm-up batch."""

    attempted: int = 0
    succeeded: int = 0
    fallbacks: int = 0
    multipliers: Dict[str, float] = field(default_factory=dict)

    @property
    def success_ratio(self) -> float:
        """Resolved contracts over attempted contracts."""
        if self.attempted == 0:
            return 0.0
        return self.succeeded / self.attempted
