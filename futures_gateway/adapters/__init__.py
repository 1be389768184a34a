"""
Futures Gateway - Adapters Package.

============================================================
PURPOSE
============================================================
Venue-facing code.

AVAILABLE ADAPTERS:
- BinanceFuturesClient: Binance USDT-M futures order lifecycle
- BinanceRestTransport: Signed/unsigned REST calls (aiohttp)

UTILITIES:
- RequestLogger: Request/response logging with masking

============================================================
"""

from .binance import BinanceFuturesClient, RequestTransport
from .transport import BinanceRestTransport, sign_query, clean_params
from .logging_utils import (
    RequestLogger,
    mask_headers,
    mask_params,
    mask_value,
)


__all__ = [
    "BinanceFuturesClient",
    "RequestTransport",
    "BinanceRestTransport",
    "sign_query",
    "clean_params",
    "RequestLogger",
    "mask_headers",
    "mask_params",
    "mask_value",
]
