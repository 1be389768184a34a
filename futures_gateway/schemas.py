"""
Pydantic Schemas for Binance Futures REST Responses.

Venue payloads are validated here before any field is read. Numeric
fields arrive as strings or numbers and stay loosely typed; the
builders convert them with safe_parse_float and apply defaults.
"""

from typing import List, Optional, Dict, Any, Union, Type, TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import ExchangeError, ErrorCategory


Numeric = Optional[Union[str, float, int]]

ModelT = TypeVar("ModelT", bound=BaseModel)


# =============================================================
# EXCHANGE INFO
# =============================================================

class SymbolFilter(BaseModel):
    """One entry of a symbol's filters array."""
    filterType: str
    stepSize: Numeric = None
    minQty: Numeric = None
    maxQty: Numeric = None
    tickSize: Numeric = None
    notional: Numeric = None
    minNotional: Numeric = None


class SymbolInfo(BaseModel):
    """One symbol of /fapi/v1/exchangeInfo."""
    symbol: str
    contractType: Optional[str] = None
    status: Optional[str] = None
    baseAsset: Optional[str] = None
    quoteAsset: Optional[str] = None
    pricePrecision: Optional[int] = None
    quantityPrecision: Optional[int] = None
    filters: List[SymbolFilter] = []

    def find_filter(self, filter_type: str) -> Optional[SymbolFilter]:
        for item in self.filters:
            if item.filterType == filter_type:
                return item
        return None


class ExchangeInfo(BaseModel):
    symbols: List[SymbolInfo] = []


# =============================================================
# ORDERS AND POSITIONS
# =============================================================

class VenueOrder(BaseModel):
    """Order as returned by the order, cancel and openOrders endpoints."""
    orderId: Union[int, str]
    symbol: Optional[str] = None
    status: Optional[str] = None
    clientOrderId: Optional[str] = None
    price: Numeric = None
    avgPrice: Numeric = None
    origQty: Numeric = None
    executedQty: Numeric = None
    side: Optional[str] = None
    type: Optional[str] = None
    timeInForce: Optional[str] = None
    reduceOnly: Optional[bool] = None
    time: Optional[int] = None
    updateTime: Optional[int] = None


class VenuePosition(BaseModel):
    """One row of /fapi/v2/positionRisk."""
    symbol: str
    positionAmt: Numeric = None
    entryPrice: Numeric = None
    markPrice: Numeric = None
    leverage: Numeric = None
    liquidationPrice: Numeric = None
    unRealizedProfit: Numeric = None
    realizedProfit: Numeric = None
    positionInitialMargin: Numeric = None
    isolatedMargin: Numeric = None
    marginType: Optional[str] = None
    contractType: Optional[str] = None
    updateTime: Optional[int] = None


# =============================================================
# MARKET DATA
# =============================================================

class TickerPrice(BaseModel):
    symbol: Optional[str] = None
    price: Numeric = None
    time: Optional[int] = None


class PremiumIndex(BaseModel):
    symbol: Optional[str] = None
    markPrice: Numeric = None
    indexPrice: Numeric = None
    lastFundingRate: Numeric = None
    time: Optional[int] = None


class FundingRateEntry(BaseModel):
    symbol: Optional[str] = None
    fundingRate: Numeric = None
    fundingTime: Optional[int] = None
    markPrice: Numeric = None


class DepthSnapshot(BaseModel):
    lastUpdateId: Optional[int] = None
    bids: List[List[Numeric]] = []
    asks: List[List[Numeric]] = []


# =============================================================
# ACCOUNT
# =============================================================

class AccountSnapshot(BaseModel):
    """Subset of /fapi/v2/account."""
    totalWalletBalance: Numeric = None
    availableBalance: Numeric = None
    totalPositionInitialMargin: Numeric = None
    totalInitialMargin: Numeric = None
    totalOpenOrderInitialMargin: Numeric = None
    totalUnrealizedProfit: Numeric = None
    totalRealizedProfit: Numeric = None
    totalMarginBalance: Numeric = None
    maxWithdrawAmount: Numeric = None
    assets: List[Dict[str, Any]] = []


class LeverageResponse(BaseModel):
    symbol: Optional[str] = None
    leverage: Union[int, str]
    maxNotionalValue: Numeric = None


# =============================================================
# BOUNDARY HELPERS
# =============================================================

def parse_payload(model: Type[ModelT], data: Any, endpoint: str) -> ModelT:
    """
    Validate one venue payload.

    Raises:
        ExchangeError: Body does not match the expected shape
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ExchangeError(
            f"Malformed response from {endpoint}: {e.error_count()} invalid field(s)",
            body=data,
            category=ErrorCategory.MALFORMED_RESPONSE,
        ) from e


def parse_payload_list(model: Type[ModelT], data: Any, endpoint: str) -> List[ModelT]:
    """Validate a venue payload that must be a list of `model`."""
    try:
        return TypeAdapter(List[model]).validate_python(data)
    except PydanticValidationError as e:
        raise ExchangeError(
            f"Malformed response from {endpoint}: {e.error_count()} invalid field(s)",
            body=data,
            category=ErrorCategory.MALFORMED_RESPONSE,
        ) from e
