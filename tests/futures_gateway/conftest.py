"""
Shared fixtures for futures gateway tests.

Venue payloads mirror the shapes returned by the Binance USDT-M
futures REST API.
"""

import pytest
from unittest.mock import AsyncMock

from futures_gateway import BinanceFuturesClient, GatewayConfig


EXCHANGE_INFO = {
    "timezone": "UTC",
    "symbols": [
        {
            "symbol": "BTCUSDT",
            "contractType": "PERPETUAL",
            "status": "TRADING",
            "baseAsset": "BTC",
            "quoteAsset": "USDT",
            "pricePrecision": 2,
            "quantityPrecision": 3,
            "filters": [
                {"filterType": "PRICE_FILTER", "tickSize": "0.10", "minPrice": "556.80"},
                {"filterType": "LOT_SIZE", "stepSize": "0.001", "minQty": "0.001", "maxQty": "1000"},
                {"filterType": "MARKET_LOT_SIZE", "stepSize": "0.001", "minQty": "0.001", "maxQty": "120"},
                {"filterType": "MIN_NOTIONAL", "notional": "100"},
            ],
        },
        {
            "symbol": "ETHUSDT",
            "contractType": "PERPETUAL",
            "status": "TRADING",
            "baseAsset": "ETH",
            "quoteAsset": "USDT",
            "pricePrecision": 2,
            "quantityPrecision": 3,
            "filters": [
                {"filterType": "PRICE_FILTER", "tickSize": "0.01"},
                {"filterType": "LOT_SIZE", "stepSize": "0.01", "minQty": "0.05", "maxQty": "10000"},
                {"filterType": "MIN_NOTIONAL", "notional": "20"},
            ],
        },
        {
            "symbol": "DOGEUSDT",
            "contractType": "PERPETUAL",
            "status": "TRADING",
            "baseAsset": "DOGE",
            "quoteAsset": "USDT",
            "pricePrecision": 6,
            "quantityPrecision": 0,
            "filters": [
                {"filterType": "PRICE_FILTER", "tickSize": "0.000010"},
                {"filterType": "LOT_SIZE", "stepSize": "1", "minQty": "1", "maxQty": "50000000"},
                {"filterType": "MIN_NOTIONAL", "notional": "5"},
            ],
        },
        {
            "symbol": "BTCUSDT_240329",
            "contractType": "CURRENT_QUARTER",
            "status": "TRADING",
            "baseAsset": "BTC",
            "quoteAsset": "USDT",
            "filters": [],
        },
        {
            "symbol": "BTCBUSD",
            "contractType": "PERPETUAL",
            "status": "TRADING",
            "baseAsset": "BTC",
            "quoteAsset": "BUSD",
            "filters": [],
        },
    ],
}


def make_transport(routes):
    """
    AsyncMock transport answering by (method, path).

    A route value may be a payload, an exception instance to raise,
    or a callable taking the request params.
    """
    transport = AsyncMock()

    async def request(method, path, params=None, signed=False):
        if (method, path) not in routes:
            raise AssertionError(f"Unexpected request {method} {path}")
        handler = routes[(method, path)]
        if isinstance(handler, BaseException):
            raise handler
        if callable(handler):
            return handler(params or {})
        return handler

    transport.request.side_effect = request
    return transport


def requested_paths(transport):
    """(method, path) of every request the transport received."""
    return [(c.args[0], c.args[1]) for c in transport.request.call_args_list]


@pytest.fixture
def config():
    return GatewayConfig.for_testing()


@pytest.fixture
def exchange_info():
    return EXCHANGE_INFO


@pytest.fixture
def make_client(config):
    """Build a client over a routed AsyncMock transport."""

    def _make(routes):
        transport = make_transport(routes)
        return BinanceFuturesClient(config, transport=transport), transport

    return _make


@pytest.fixture
def routed_transport():
    return make_transport


@pytest.fixture
def paths():
    return requested_paths
