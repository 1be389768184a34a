"""
Futures Gateway Package.

============================================================
PURPOSE
============================================================
Normalization and access layer over the Binance USDT-M
futures REST API.

CRITICAL PRINCIPLE:
    "The gateway normalizes and validates, it never decides."
    Callers choose what to trade; the gateway converts units to
    venue quantities and refuses orders the venue would reject.

============================================================
MODULES
============================================================
- types: Contract, order, position and market data types
- config: Gateway configuration
- errors: Exception hierarchy and venue error mapping
- symbols: Contract/symbol translation, composite order ids
- numeric: Step rounding and number formatting
- schemas: Venue response validation
- contracts: Contract metadata cache and fallback
- summaries: Order/position normalization
- quanto: Quanto multiplier resolver
- factory: Client construction and lifecycle
- adapters: Binance client, transport, logging

============================================================
"""

# ============================================================
# TYPES
# ============================================================
from .types import (
    OrderStatus,
    OrderSide,
    OrderType,
    ContractInfo,
    OrderSummary,
    PositionSummary,
    FuturesTicker,
    Candle,
    FuturesAccount,
    OrderBook,
    FundingRate,
    LeverageSetting,
    PreloadResult,
)

# ============================================================
# CONFIG AND ERRORS
# ============================================================
from .config import GatewayConfig, ExchangeConfig, TimeoutConfig
from .errors import (
    ErrorCategory,
    GatewayError,
    ConfigurationError,
    ValidationError,
    OrderSizeError,
    MinNotionalError,
    OrderIdError,
    ExchangeError,
)

# ============================================================
# NORMALIZATION
# ============================================================
from .symbols import (
    ParsedOrderId,
    contract_to_symbol,
    symbol_to_contract,
    compose_order_id,
    parse_order_id,
)
from .numeric import (
    precision_from_step,
    format_number,
    floor_to_step,
    safe_parse_float,
)
from .contracts import ContractCache, build_contract_info, build_fallback_contract_info
from .summaries import map_order_status, build_order_summary, build_position_summary

# ============================================================
# CLIENT
# ============================================================
from .adapters import BinanceFuturesClient, BinanceRestTransport
from .quanto import QuantoMultiplierResolver
from .factory import ClientProvider, create_client


__all__ = [
    # Types
    "OrderStatus",
    "OrderSide",
    "OrderType",
    "ContractInfo",
    "OrderSummary",
    "PositionSummary",
    "FuturesTicker",
    "Candle",
    "FuturesAccount",
    "OrderBook",
    "FundingRate",
    "LeverageSetting",
    "PreloadResult",
    # Config
    "GatewayConfig",
    "ExchangeConfig",
    "TimeoutConfig",
    # Errors
    "ErrorCategory",
    "GatewayError",
    "ConfigurationError",
    "ValidationError",
    "OrderSizeError",
    "MinNotionalError",
    "OrderIdError",
    "ExchangeError",
    # Normalization
    "ParsedOrderId",
    "contract_to_symbol",
    "symbol_to_contract",
    "compose_order_id",
    "parse_order_id",
    "precision_from_step",
    "format_number",
    "floor_to_step",
    "safe_parse_float",
    "ContractCache",
    "build_contract_info",
    "build_fallback_contract_info",
    "map_order_status",
    "build_order_summary",
    "build_position_summary",
    # Client
    "BinanceFuturesClient",
    "BinanceRestTransport",
    "QuantoMultiplierResolver",
    "ClientProvider",
    "create_client",
]
