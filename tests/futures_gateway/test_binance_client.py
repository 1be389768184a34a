"""
Binance Futures Client Tests.

============================================================
PURPOSE
============================================================
Order lifecycle and market data against a mocked transport.

TEST CATEGORIES:
- Contract metadata: loading, caching, fallback
- Order placement: validation, payload, venue errors
- Order lookup: composite ids
- Account and market data pass-throughs

============================================================
"""

import logging
import math

import pytest
from unittest.mock import AsyncMock

from futures_gateway import (
    BinanceFuturesClient,
    ConfigurationError,
    ErrorCategory,
    ExchangeError,
    GatewayConfig,
    MinNotionalError,
    OrderIdError,
    OrderSizeError,
    OrderStatus,
    ValidationError,
)


EXCHANGE_INFO_ROUTE = ("GET", "/fapi/v1/exchangeInfo")


def ticker_routes(price, mark_price=None):
    return {
        ("GET", "/fapi/v1/ticker/price"): {"symbol": "X", "price": price, "time": 1700000000000},
        ("GET", "/fapi/v1/premiumIndex"): {
            "symbol": "X",
            "markPrice": mark_price if mark_price is not None else price,
            "indexPrice": price,
            "lastFundingRate": "0.00010000",
            "time": 1700000000001,
        },
    }


def order_response(order_id, symbol, **overrides):
    data = {
        "orderId": order_id,
        "symbol": symbol,
        "status": "NEW",
        "clientOrderId": "x-1",
        "price": "0",
        "avgPrice": "0.00",
        "origQty": "0",
        "executedQty": "0",
        "side": "BUY",
        "type": "MARKET",
        "timeInForce": "GTC",
        "reduceOnly": False,
        "updateTime": 1700000000000,
    }
    data.update(overrides)
    return data


def post_order_params(transport):
    for call in transport.request.call_args_list:
        if call.args[:2] == ("POST", "/fapi/v1/order"):
            return call.args[2]
    return None


# ============================================================
# CONSTRUCTION
# ============================================================

class TestClientConstruction:
    """Tests for client construction."""

    def test_missing_credentials_rejected(self):
        with pytest.raises(ConfigurationError):
            BinanceFuturesClient(GatewayConfig(), transport=AsyncMock())

    @pytest.mark.asyncio
    async def test_close_closes_transport(self, config):
        transport = AsyncMock()
        client = BinanceFuturesClient(config, transport=transport)

        await client.close()

        transport.close.assert_awaited_once()


# ============================================================
# CONTRACT METADATA
# ============================================================

class TestContractMetadata:
    """Tests for exchange info loading and fallback."""

    @pytest.mark.asyncio
    async def test_loads_only_usdt_perpetuals(self, make_client, exchange_info):
        client, _ = make_client({EXCHANGE_INFO_ROUTE: exchange_info})

        contracts = await client.get_exchange_info()

        assert set(contracts) == {"BTC_USDT", "ETH_USDT", "DOGE_USDT"}
        assert contracts["BTC_USDT"].min_notional == 100

    @pytest.mark.asyncio
    async def test_cache_not_refetched(self, make_client, exchange_info):
        client, transport = make_client({EXCHANGE_INFO_ROUTE: exchange_info})

        await client.get_exchange_info()
        await client.get_exchange_info()
        await client.get_contract_info("ETH_USDT")

        assert transport.request.await_count == 1

    @pytest.mark.asyncio
    async def test_refresh_refetches(self, make_client, exchange_info):
        client, transport = make_client({EXCHANGE_INFO_ROUTE: exchange_info})

        await client.get_exchange_info()
        await client.get_exchange_info(refresh=True)

        assert transport.request.await_count == 2

    @pytest.mark.asyncio
    async def test_fallback_when_metadata_unavailable(self, make_client):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: ExchangeError("Service unavailable", status=503),
        })

        first = await client.get_contract_info("SOL_USDT")
        second = await client.get_contract_info("SOL_USDT")

        assert first.is_fallback is True
        assert first.step_size == 0.1
        assert first.quanto_multiplier == 0.1
        assert second is first
        assert transport.request.await_count == 1

    @pytest.mark.asyncio
    async def test_fallback_only_cache_warns_without_refetch(self, make_client, caplog):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: ExchangeError("Service unavailable", status=503),
        })
        await client.get_contract_info("SOL_USDT")

        with caplog.at_level(logging.WARNING, logger="futures_gateway.adapters.binance"):
            contracts = await client.get_exchange_info()

        assert set(contracts) == {"SOL_USDT"}
        assert "only fallback metadata" in caplog.text
        assert transport.request.await_count == 1

    @pytest.mark.asyncio
    async def test_venue_cache_served_without_warning(self, make_client, exchange_info, caplog):
        client, _ = make_client({EXCHANGE_INFO_ROUTE: exchange_info})
        await client.get_exchange_info()

        with caplog.at_level(logging.WARNING, logger="futures_gateway.adapters.binance"):
            await client.get_exchange_info()

        assert "only fallback metadata" not in caplog.text

    @pytest.mark.asyncio
    async def test_fallback_for_unlisted_contract(self, make_client, exchange_info):
        client, transport = make_client({EXCHANGE_INFO_ROUTE: exchange_info})

        info = await client.get_contract_info("PEPE_USDT")
        again = await client.get_contract_info("PEPE_USDT")

        assert info.is_fallback is True
        assert info.step_size == 0.001
        assert again is info
        assert transport.request.await_count == 1

    @pytest.mark.asyncio
    async def test_malformed_exchange_info_falls_back(self, make_client):
        client, _ = make_client({EXCHANGE_INFO_ROUTE: {"symbols": "not-a-list"}})

        info = await client.get_contract_info("ETH_USDT")

        assert info.is_fallback is True
        assert info.step_size == 0.01

    @pytest.mark.asyncio
    async def test_cleared_cache_reloads(self, make_client, exchange_info):
        client, transport = make_client({EXCHANGE_INFO_ROUTE: exchange_info})

        await client.get_exchange_info()
        client.contract_cache.clear()
        await client.get_contract_info("BTC_USDT")

        assert transport.request.await_count == 2


# ============================================================
# ORDER PLACEMENT
# ============================================================

class TestPlaceOrder:
    """Tests for place_order."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [0, 0.0, float("nan"), float("inf"), True, "5"])
    async def test_invalid_size_makes_no_request(self, make_client, exchange_info, size):
        client, transport = make_client({EXCHANGE_INFO_ROUTE: exchange_info})

        with pytest.raises(OrderSizeError) as exc_info:
            await client.place_order("BTC_USDT", size)

        assert exc_info.value.code == "INVALID_SIZE"
        transport.request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_market_buy(self, make_client, exchange_info, paths):
        routes = {EXCHANGE_INFO_ROUTE: exchange_info, **ticker_routes("50000")}
        routes[("POST", "/fapi/v1/order")] = order_response(
            12345, "BTCUSDT", origQty="0.005", executedQty="0.005",
            status="FILLED", avgPrice="50001.20",
        )
        client, transport = make_client(routes)

        summary = await client.place_order("BTC_USDT", 5)

        assert summary.id == "BTCUSDT:12345"
        assert summary.status == OrderStatus.FINISHED
        assert summary.size == 5
        assert summary.left == 0
        assert summary.fill_price == 50001.2

        params = post_order_params(transport)
        assert params == {
            "symbol": "BTCUSDT",
            "side": "BUY",
            "type": "MARKET",
            "quantity": "0.005",
            "newOrderRespType": "RESULT",
        }
        assert transport.request.call_args_list[-1].kwargs["signed"] is True
        assert ("GET", "/fapi/v1/premiumIndex") in paths(transport)

    @pytest.mark.asyncio
    async def test_limit_sell_reduce_only(self, make_client, exchange_info, paths):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            ("POST", "/fapi/v1/order"): order_response(
                99, "ETHUSDT", side="SELL", type="LIMIT", price="2000.12", origQty="0.07",
            ),
        })

        summary = await client.place_order("ETH_USDT", -7, price=2000.129, tif="ioc", reduce_only=True)

        params = post_order_params(transport)
        assert params["side"] == "SELL"
        assert params["type"] == "LIMIT"
        assert params["quantity"] == "0.07"
        assert params["price"] == "2000.12"
        assert params["timeInForce"] == "IOC"
        assert params["reduceOnly"] == "true"
        assert summary.id == "ETHUSDT:99"
        assert summary.size == 7
        assert summary.status == OrderStatus.OPEN
        assert ("GET", "/fapi/v1/ticker/price") not in paths(transport)

    @pytest.mark.asyncio
    async def test_limit_default_time_in_force(self, make_client, exchange_info):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            ("POST", "/fapi/v1/order"): order_response(1, "BTCUSDT", type="LIMIT"),
        })

        await client.place_order("BTC_USDT", 3, price=43000.05)

        params = post_order_params(transport)
        assert params["timeInForce"] == "GTC"
        assert params["price"] == "43000"
        assert "reduceOnly" not in params

    @pytest.mark.asyncio
    async def test_fractional_size_rounded_to_units(self, make_client, exchange_info):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            ("POST", "/fapi/v1/order"): order_response(1, "BTCUSDT", type="LIMIT"),
        })

        await client.place_order("BTC_USDT", 2.6, price=43000)

        assert post_order_params(transport)["quantity"] == "0.003"

    @pytest.mark.asyncio
    async def test_below_minimum_size(self, make_client, exchange_info, paths):
        client, transport = make_client({EXCHANGE_INFO_ROUTE: exchange_info})

        with pytest.raises(OrderSizeError) as exc_info:
            await client.place_order("ETH_USDT", 3, price=2000)

        assert exc_info.value.code == "SIZE_BELOW_MINIMUM"
        assert paths(transport) == [EXCHANGE_INFO_ROUTE]

    @pytest.mark.asyncio
    async def test_above_maximum_size(self, make_client, exchange_info):
        client, _ = make_client({EXCHANGE_INFO_ROUTE: exchange_info})

        with pytest.raises(OrderSizeError) as exc_info:
            await client.place_order("BTC_USDT", 2_000_000, price=43000)

        assert exc_info.value.code == "SIZE_ABOVE_MAXIMUM"

    @pytest.mark.asyncio
    async def test_market_order_below_min_notional(self, make_client, exchange_info, paths):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            **ticker_routes("0.08"),
        })

        with pytest.raises(MinNotionalError) as exc_info:
            await client.place_order("DOGE_USDT", 10)

        error = exc_info.value
        assert isinstance(error, ValidationError)
        assert error.code == "NOTIONAL_BELOW_MINIMUM"
        assert math.isclose(error.notional, 0.8)
        assert error.min_notional == 5
        assert ("POST", "/fapi/v1/order") not in paths(transport)

    @pytest.mark.asyncio
    async def test_unknown_mark_price_skips_notional_check(self, make_client, exchange_info):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            **ticker_routes("0", mark_price="0"),
            ("POST", "/fapi/v1/order"): order_response(5, "DOGEUSDT"),
        })

        summary = await client.place_order("DOGE_USDT", 10)

        assert summary.id == "DOGEUSDT:5"
        assert post_order_params(transport)["quantity"] == "10"

    @pytest.mark.asyncio
    async def test_venue_rejection_propagates(self, make_client, exchange_info):
        rejection = ExchangeError(
            "Margin is insufficient.",
            status=400,
            exchange_code=-2019,
            category=ErrorCategory.INSUFFICIENT_MARGIN,
        )
        client, _ = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            ("POST", "/fapi/v1/order"): rejection,
        })

        with pytest.raises(ExchangeError) as exc_info:
            await client.place_order("BTC_USDT", 5, price=43000)

        assert exc_info.value is rejection
        assert exc_info.value.message == "Margin is insufficient."
        assert exc_info.value.status == 400

    @pytest.mark.asyncio
    async def test_order_on_fallback_metadata(self, make_client):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: ExchangeError("Service unavailable", status=503),
            ("POST", "/fapi/v1/order"): order_response(8, "SOLUSDT", type="LIMIT"),
        })

        await client.place_order("SOL_USDT", 25, price=101.237)

        params = post_order_params(transport)
        assert params["quantity"] == "2.5"
        assert params["price"] == "101.23"


# ============================================================
# ORDER LOOKUP
# ============================================================

class TestOrderLookup:
    """Tests for get_order, cancel_order and get_open_orders."""

    @pytest.mark.asyncio
    async def test_bare_id_rejected_without_request(self, make_client):
        client, transport = make_client({})

        with pytest.raises(OrderIdError):
            await client.get_order("12345")
        with pytest.raises(OrderIdError):
            await client.cancel_order("")

        transport.request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_order(self, make_client, exchange_info):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            ("GET", "/fapi/v1/order"): order_response(
                12345, "BTCUSDT", status="PARTIALLY_FILLED",
                origQty="0.010", executedQty="0.004",
            ),
        })

        summary = await client.get_order("BTCUSDT:12345")

        call = transport.request.call_args_list[-1]
        assert call.args[2] == {"symbol": "BTCUSDT", "orderId": "12345"}
        assert call.kwargs["signed"] is True
        assert summary.contract == "BTC_USDT"
        assert summary.status == OrderStatus.OPEN
        assert summary.size == 10
        assert summary.left == 6

    @pytest.mark.asyncio
    async def test_cancel_order(self, make_client, exchange_info, paths):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            ("DELETE", "/fapi/v1/order"): order_response(
                42, "ETHUSDT", status="CANCELED", origQty="0.10",
            ),
        })

        summary = await client.cancel_order("ETHUSDT:42")

        assert ("DELETE", "/fapi/v1/order") in paths(transport)
        assert summary.id == "ETHUSDT:42"
        assert summary.status == OrderStatus.CANCELLED
        assert summary.size == 10

    @pytest.mark.asyncio
    async def test_unknown_order_propagates(self, make_client, exchange_info):
        client, _ = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            ("GET", "/fapi/v1/order"): ExchangeError(
                "Order does not exist.", status=400, exchange_code=-2013,
                category=ErrorCategory.ORDER_NOT_FOUND,
            ),
        })

        with pytest.raises(ExchangeError, match="Order does not exist."):
            await client.get_order("BTCUSDT:1")

    @pytest.mark.asyncio
    async def test_open_orders(self, make_client, exchange_info):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            ("GET", "/fapi/v1/openOrders"): [
                order_response(1, "BTCUSDT", origQty="0.002"),
                order_response(2, "ETHUSDT", origQty="0.05"),
            ],
        })

        orders = await client.get_open_orders()

        assert [o.id for o in orders] == ["BTCUSDT:1", "ETHUSDT:2"]
        assert [o.size for o in orders] == [2, 5]
        assert transport.request.call_args_list[0].args[2] == {}

    @pytest.mark.asyncio
    async def test_open_orders_for_contract(self, make_client, exchange_info):
        client, transport = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            ("GET", "/fapi/v1/openOrders"): [],
        })

        assert await client.get_open_orders("BTC_USDT") == []
        assert transport.request.call_args_list[0].args[2] == {"symbol": "BTCUSDT"}


# ============================================================
# ACCOUNT
# ============================================================

class TestAccount:
    """Tests for positions, account and leverage."""

    @pytest.mark.asyncio
    async def test_positions_filtered_and_signed(self, make_client, exchange_info):
        client, _ = make_client({
            EXCHANGE_INFO_ROUTE: exchange_info,
            ("GET", "/fapi/v2/positionRisk"): [
                {"symbol": "BTCUSDT", "positionAmt": "-0.010", "entryPrice": "43000",
                 "markPrice": "42900", "leverage": "10", "contractType": "PERPETUAL"},
                {"symbol": "ETHUSDT", "positionAmt": "0.000", "contractType": "PERPETUAL"},
                {"symbol": "BTCUSDT_240329", "positionAmt": "0.002", "contractType": "CURRENT_QUARTER"},
                {"symbol": "BTCBUSD", "positionAmt": "0.002", "contractType": "PERPETUAL"},
                {"symbol": "DOGEUSDT", "positionAmt": "300"},
            ],
        })

        positions = await client.get_positions()

        assert [(p.contract, p.size) for p in positions] == [("BTC_USDT", -10), ("DOGE_USDT", 300)]
        assert positions[0].leverage == 10

    @pytest.mark.asyncio
    async def test_positions_failure_propagates(self, make_client):
        client, _ = make_client({
            ("GET", "/fapi/v2/positionRisk"): ExchangeError("Invalid API-key", status=401),
        })

        with pytest.raises(ExchangeError):
            await client.get_positions()

    @pytest.mark.asyncio
    async def test_futures_account(self, make_client):
        client, _ = make_client({
            ("GET", "/fapi/v2/account"): {
                "totalWalletBalance": "1000.50",
                "availableBalance": "800.25",
                "totalInitialMargin": "150.00",
                "totalOpenOrderInitialMargin": "50.25",
                "totalUnrealizedProfit": "-12.5",
                "totalMarginBalance": "988.00",
                "maxWithdrawAmount": "800.25",
                "assets": [{"asset": "USDT", "walletBalance": "1000.50"}],
            },
        })

        account = await client.get_futures_account()

        assert account.currency == "USDT"
        assert account.total == 1000.5
        assert account.available == 800.25
        assert account.position_margin == 150.0
        assert account.order_margin == 50.25
        assert account.unrealised_pnl == -12.5
        assert account.realised_pnl == 0.0
        assert account.margin_balance == 988.0
        assert account.assets[0]["asset"] == "USDT"

    @pytest.mark.asyncio
    async def test_set_leverage(self, make_client):
        client, transport = make_client({
            ("POST", "/fapi/v1/leverage"): {
                "symbol": "BTCUSDT", "leverage": 20, "maxNotionalValue": "25000000",
            },
        })

        result = await client.set_leverage("BTC_USDT", 20)

        assert result.contract == "BTC_USDT"
        assert result.leverage == 20
        assert result.max_notional_value == 25_000_000
        assert transport.request.call_args.args[2] == {"symbol": "BTCUSDT", "leverage": 20}

    @pytest.mark.asyncio
    async def test_set_leverage_failure_returns_none(self, make_client):
        client, _ = make_client({
            ("POST", "/fapi/v1/leverage"): ExchangeError("Leverage not valid", status=400),
        })

        assert await client.set_leverage("BTC_USDT", 200) is None


# ============================================================
# MARKET DATA
# ============================================================

class TestMarketData:
    """Tests for ticker, candles, funding and depth."""

    @pytest.mark.asyncio
    async def test_ticker(self, make_client):
        client, _ = make_client(ticker_routes("43000.5", mark_price="43001.0"))

        ticker = await client.get_futures_ticker("BTC_USDT")

        assert ticker.contract == "BTC_USDT"
        assert ticker.last == 43000.5
        assert ticker.mark_price == 43001.0
        assert ticker.funding_rate == 0.0001
        assert ticker.time == 1700000000001

    @pytest.mark.asyncio
    async def test_candles(self, make_client):
        client, transport = make_client({
            ("GET", "/fapi/v1/klines"): [
                [1700000000000, "43000", "43100", "42900", "43050", "12.5", 1700000299999, "537500", 100, "6", "258000", "0"],
            ],
        })

        candles = await client.get_futures_candles("BTC_USDT", "1m", 1)

        assert len(candles) == 1
        assert candles[0].open_time == 1700000000000
        assert candles[0].close == 43050.0
        assert candles[0].quote_volume == 537500.0
        assert transport.request.call_args.args[2] == {"symbol": "BTCUSDT", "interval": "1m", "limit": 1}

    @pytest.mark.asyncio
    async def test_malformed_candle_row(self, make_client):
        client, _ = make_client({("GET", "/fapi/v1/klines"): [[1700000000000, "1"]]})

        with pytest.raises(ExchangeError, match="Malformed kline row"):
            await client.get_futures_candles("BTC_USDT")

    @pytest.mark.asyncio
    async def test_funding_rate(self, make_client):
        client, _ = make_client({
            ("GET", "/fapi/v1/fundingRate"): [
                {"symbol": "BTCUSDT", "fundingRate": "0.00010000", "fundingTime": 1700006400000, "markPrice": "43000.1"},
            ],
        })

        rate = await client.get_funding_rate("BTC_USDT")

        assert rate.funding_rate == 0.0001
        assert rate.funding_time == 1700006400000
        assert rate.mark_price == 43000.1

    @pytest.mark.asyncio
    async def test_funding_rate_empty(self, make_client):
        client, _ = make_client({("GET", "/fapi/v1/fundingRate"): []})

        assert await client.get_funding_rate("BTC_USDT") is None

    @pytest.mark.asyncio
    async def test_order_book(self, make_client):
        client, _ = make_client({
            ("GET", "/fapi/v1/depth"): {
                "lastUpdateId": 1027024,
                "bids": [["43000.10", "1.5"], ["43000.00", "0.2"]],
                "asks": [["43000.20", "0.7"]],
            },
        })

        book = await client.get_order_book("BTC_USDT", 5)

        assert book.bids == [(43000.1, 1.5), (43000.0, 0.2)]
        assert book.asks == [(43000.2, 0.7)]
        assert book.last_update_id == 1027024

    @pytest.mark.asyncio
    async def test_malformed_depth(self, make_client):
        client, _ = make_client({("GET", "/fapi/v1/depth"): ["unexpected"]})

        with pytest.raises(ExchangeError) as exc_info:
            await client.get_order_book("BTC_USDT")

        assert exc_info.value.category == ErrorCategory.MALFORMED_RESPONSE
