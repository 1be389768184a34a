"""
Futures Gateway - Binance USDT-M Futures Client.

============================================================
PURPOSE
============================================================
Order lifecycle and market data access on Binance USDT-M
perpetual futures, expressed in contracts and units.

SAFETY FEATURES:
- Quantities and prices floored to step/tick, never rounded up
- Minimum size and minimum notional checked before submission
- Composite order ids required for order lookups
- Metadata fetch failures degrade to a static fallback

============================================================
"""

import asyncio
import logging
import math
from typing import Optional, Dict, Any, List, Protocol

from ..config import GatewayConfig
from ..contracts import (
    ContractCache,
    build_contract_info,
    build_fallback_contract_info,
    is_supported_symbol,
)
from ..errors import ErrorCategory, ExchangeError, MinNotionalError, OrderSizeError
from ..numeric import floor_to_step, format_number, safe_parse_float
from ..schemas import (
    AccountSnapshot,
    DepthSnapshot,
    ExchangeInfo,
    FundingRateEntry,
    LeverageResponse,
    PremiumIndex,
    TickerPrice,
    VenueOrder,
    VenuePosition,
    parse_payload,
    parse_payload_list,
)
from ..summaries import build_order_summary, build_position_summary
from ..symbols import contract_to_symbol, parse_order_id, symbol_to_contract
from ..types import (
    Candle,
    ContractInfo,
    FundingRate,
    FuturesAccount,
    FuturesTicker,
    LeverageSetting,
    OrderBook,
    OrderSide,
    OrderSummary,
    OrderType,
    PositionSummary,
)
from .transport import BinanceRestTransport


logger = logging.getLogger(__name__)


class RequestTransport(Protocol):
    """Signed HTTP request capability used by the client."""

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        signed: bool = False,
    ) -> Any:
        ...


# ============================================================
# BINANCE FUTURES CLIENT
# ============================================================

class BinanceFuturesClient:
    """
    Binance USDT-M futures client.

    Owns the contract metadata cache. Order sizes are signed unit
    counts; one unit is one LOT_SIZE step of the contract.
    """

    def __init__(
        self,
        config: GatewayConfig,
        transport: Optional[RequestTransport] = None,
        contract_cache: Optional[ContractCache] = None,
    ):
        """
        Initialize client.

        Args:
            config: Gateway configuration
            transport: Request transport (default: BinanceRestTransport)
            contract_cache: Contract metadata cache to share

        Raises:
            ConfigurationError: API key or secret missing
        """
        config.validate()

        self._config = config
        self._transport = transport or BinanceRestTransport(config)
        self._contracts = contract_cache if contract_cache is not None else ContractCache()

        logger.info(
            f"Binance Futures client initialized "
            f"({'testnet' if config.exchange.testnet else 'mainnet'})"
        )

    @property
    def contract_cache(self) -> ContractCache:
        return self._contracts

    async def close(self) -> None:
        """Release the transport's HTTP session."""
        close = getattr(self._transport, "close", None)
        if close is not None:
            await close()

    # --------------------------------------------------------
    # CONTRACT METADATA
    # --------------------------------------------------------

    async def get_exchange_info(self, refresh: bool = False) -> Dict[str, ContractInfo]:
        """
        Load trading rules for every supported contract.

        Once the cache holds any entry the venue is not asked again
        unless refresh is set. A cache holding only fallback entries
        is still served, with a warning.

        Returns:
            Snapshot of the contract cache
        """
        if len(self._contracts) > 0 and not refresh:
            if not self._contracts.has_venue_entries():
                logger.warning(
                    "Contract cache holds only fallback metadata; "
                    "call get_exchange_info(refresh=True) to reload"
                )
            return self._contracts.snapshot()

        data = await self._transport.request("GET", "/fapi/v1/exchangeInfo")
        info = parse_payload(ExchangeInfo, data, "/fapi/v1/exchangeInfo")

        exchange = self._config.exchange
        loaded = self._contracts.put_many(
            build_contract_info(symbol)
            for symbol in info.symbols
            if is_supported_symbol(symbol, exchange.contract_type, exchange.quote_asset)
        )

        logger.info(f"Loaded {loaded} contract rules")
        return self._contracts.snapshot()

    async def ensure_contract_info(self, contract: str) -> ContractInfo:
        """
        Resolve trading rules for a contract.

        Cache hit, else bulk refresh, else a cached static fallback.
        Never raises for metadata failures.
        """
        cached = self._contracts.get(contract)
        if cached is not None:
            return cached

        try:
            await self.get_exchange_info()
        except ExchangeError as e:
            logger.warning(f"Contract metadata refresh failed, using fallback for {contract}: {e}")

        cached = self._contracts.get(contract)
        if cached is not None:
            return cached

        fallback = build_fallback_contract_info(contract)
        logger.warning(
            f"No venue metadata for {contract}, using fallback step {fallback.step_size}"
        )
        return self._contracts.setdefault(fallback)

    async def get_contract_info(self, contract: str) -> ContractInfo:
        """Trading rules for a contract (see ensure_contract_info)."""
        return await self.ensure_contract_info(contract)

    # --------------------------------------------------------
    # ORDER OPERATIONS
    # --------------------------------------------------------

    async def place_order(
        self,
        contract: str,
        size: float,
        price: Optional[float] = None,
        tif: Optional[str] = None,
        reduce_only: bool = False,
    ) -> OrderSummary:
        """
        Place a market or limit order.

        Args:
            contract: Contract name, e.g. BTC_USDT
            size: Signed units (positive buys, negative sells)
            price: Limit price; omitted or <= 0 places a market order
            tif: Time in force for limit orders (default GTC)
            reduce_only: Only reduce an existing position

        Returns:
            OrderSummary of the accepted order

        Raises:
            OrderSizeError: Size zero, non-finite or out of bounds
            MinNotionalError: Market order below minimum notional
            ExchangeError: Venue rejected the order
        """
        if isinstance(size, bool) or not isinstance(size, (int, float)) or not math.isfinite(size) or size == 0:
            raise OrderSizeError(f"Invalid order size: {size}", code="INVALID_SIZE")

        info = await self.ensure_contract_info(contract)
        symbol = contract_to_symbol(contract)

        side = OrderSide.BUY if size > 0 else OrderSide.SELL
        units = abs(round(size))

        if units < info.order_size_min:
            raise OrderSizeError(
                f"Order size {units} is below minimum {info.order_size_min} for {contract}",
                code="SIZE_BELOW_MINIMUM",
            )
        if units > info.order_size_max:
            raise OrderSizeError(
                f"Order size {units} is above maximum {info.order_size_max} for {contract}",
                code="SIZE_ABOVE_MAXIMUM",
            )

        quantity = floor_to_step(units * info.step_size, info.step_size)
        limit_price = price if price is not None and price > 0 else None

        if limit_price is None:
            ticker = await self.get_futures_ticker(contract)
            notional = quantity * ticker.mark_price
            if ticker.mark_price > 0 and notional < info.min_notional:
                raise MinNotionalError(notional, info.min_notional)

        payload: Dict[str, Any] = {
            "symbol": symbol,
            "side": side.value,
            "type": (OrderType.LIMIT if limit_price else OrderType.MARKET).value,
            "quantity": format_number(quantity, info.quantity_precision),
            "newOrderRespType": "RESULT",
        }

        if limit_price is not None:
            payload["price"] = format_number(
                floor_to_step(limit_price, info.tick_size),
                info.price_precision,
            )
            payload["timeInForce"] = (tif or "GTC").upper()

        if reduce_only:
            payload["reduceOnly"] = "true"

        try:
            data = await self._transport.request("POST", "/fapi/v1/order", payload, signed=True)
        except ExchangeError as e:
            logger.error(f"Order placement failed for {contract}: {e.message} (status {e.status})")
            raise

        order = parse_payload(VenueOrder, data, "/fapi/v1/order")
        summary = build_order_summary(order, contract, info)
        logger.info(
            f"Placed order {summary.id}: {side.value} {units} units {contract} "
            f"@ {payload.get('price', 'MARKET')}"
        )
        return summary

    async def get_order(self, order_id: str) -> OrderSummary:
        """Query an order by composite id."""
        parsed = parse_order_id(order_id)
        contract = symbol_to_contract(parsed.symbol)
        info = await self.ensure_contract_info(contract)

        data = await self._transport.request(
            "GET",
            "/fapi/v1/order",
            {"symbol": parsed.symbol, "orderId": parsed.order_id},
            signed=True,
        )
        return build_order_summary(parse_payload(VenueOrder, data, "/fapi/v1/order"), contract, info)

    async def cancel_order(self, order_id: str) -> OrderSummary:
        """Cancel an order by composite id."""
        parsed = parse_order_id(order_id)
        contract = symbol_to_contract(parsed.symbol)
        info = await self.ensure_contract_info(contract)

        data = await self._transport.request(
            "DELETE",
            "/fapi/v1/order",
            {"symbol": parsed.symbol, "orderId": parsed.order_id},
            signed=True,
        )
        summary = build_order_summary(parse_payload(VenueOrder, data, "/fapi/v1/order"), contract, info)
        logger.info(f"Cancelled order {summary.id} ({summary.status.value})")
        return summary

    async def get_open_orders(self, contract: Optional[str] = None) -> List[OrderSummary]:
        """Open orders, optionally for one contract."""
        params = {"symbol": contract_to_symbol(contract)} if contract else {}
        data = await self._transport.request("GET", "/fapi/v1/openOrders", params, signed=True)
        orders = parse_payload_list(VenueOrder, data, "/fapi/v1/openOrders")

        summaries = []
        for order in orders:
            order_contract = symbol_to_contract(order.symbol or params.get("symbol", ""))
            info = await self.ensure_contract_info(order_contract)
            summaries.append(build_order_summary(order, order_contract, info))
        return summaries

    # --------------------------------------------------------
    # ACCOUNT OPERATIONS
    # --------------------------------------------------------

    async def get_positions(self) -> List[PositionSummary]:
        """Open USDT perpetual positions with signed unit sizes."""
        try:
            data = await self._transport.request("GET", "/fapi/v2/positionRisk", signed=True)
            positions = parse_payload_list(VenuePosition, data, "/fapi/v2/positionRisk")
        except ExchangeError as e:
            logger.error(f"Failed to fetch positions: {e}")
            raise

        quote_suffix = f"_{self._config.exchange.quote_asset}"
        results = []
        for position in positions:
            if position.contractType and position.contractType != self._config.exchange.contract_type:
                continue
            contract = symbol_to_contract(position.symbol)
            if not contract.endswith(quote_suffix):
                continue
            if safe_parse_float(position.positionAmt) == 0:
                continue

            info = await self.ensure_contract_info(contract)
            results.append(build_position_summary(position, contract, info))

        return results

    async def get_futures_account(self) -> FuturesAccount:
        """USDT futures wallet summary."""
        try:
            data = await self._transport.request("GET", "/fapi/v2/account", signed=True)
            account = parse_payload(AccountSnapshot, data, "/fapi/v2/account")
        except ExchangeError as e:
            logger.error(f"Failed to fetch futures account: {e}")
            raise

        position_margin = account.totalPositionInitialMargin
        if position_margin is None:
            position_margin = account.totalInitialMargin
        margin_balance = account.totalMarginBalance
        if margin_balance is None:
            margin_balance = account.totalWalletBalance

        return FuturesAccount(
            currency=self._config.exchange.quote_asset,
            total=safe_parse_float(account.totalWalletBalance),
            available=safe_parse_float(account.availableBalance),
            position_margin=safe_parse_float(position_margin),
            order_margin=safe_parse_float(account.totalOpenOrderInitialMargin),
            unrealised_pnl=safe_parse_float(account.totalUnrealizedProfit),
            realised_pnl=safe_parse_float(account.totalRealizedProfit),
            margin_balance=safe_parse_float(margin_balance),
            max_withdraw_amount=safe_parse_float(account.maxWithdrawAmount),
            assets=list(account.assets),
        )

    async def set_leverage(self, contract: str, leverage: int) -> Optional[LeverageSetting]:
        """
        Set leverage for a contract.

        Best effort: failures are logged and None is returned.
        """
        symbol = contract_to_symbol(contract)
        try:
            data = await self._transport.request(
                "POST",
                "/fapi/v1/leverage",
                {"symbol": symbol, "leverage": leverage},
                signed=True,
            )
            result = parse_payload(LeverageResponse, data, "/fapi/v1/leverage")
        except ExchangeError as e:
            logger.warning(f"Failed to set leverage {leverage}x for {contract}: {e}")
            return None

        max_notional = None
        if result.maxNotionalValue is not None:
            max_notional = safe_parse_float(result.maxNotionalValue)

        return LeverageSetting(
            contract=contract,
            leverage=int(safe_parse_float(result.leverage, leverage)),
            max_notional_value=max_notional,
        )

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def get_futures_ticker(self, contract: str) -> FuturesTicker:
        """Last price plus mark/index price and funding rate."""
        symbol = contract_to_symbol(contract)
        try:
            price_data, premium_data = await asyncio.gather(
                self._transport.request("GET", "/fapi/v1/ticker/price", {"symbol": symbol}),
                self._transport.request("GET", "/fapi/v1/premiumIndex", {"symbol": symbol}),
            )
            price = parse_payload(TickerPrice, price_data, "/fapi/v1/ticker/price")
            premium = parse_payload(PremiumIndex, premium_data, "/fapi/v1/premiumIndex")
        except ExchangeError as e:
            logger.error(f"Failed to fetch ticker for {contract}: {e}")
            raise

        last = safe_parse_float(price.price)
        return FuturesTicker(
            contract=contract,
            last=last,
            mark_price=safe_parse_float(premium.markPrice, last),
            index_price=safe_parse_float(premium.indexPrice),
            funding_rate=safe_parse_float(premium.lastFundingRate),
            time=premium.time or price.time or 0,
        )

    async def get_futures_candles(
        self,
        contract: str,
        interval: str = "5m",
        limit: int = 100,
    ) -> List[Candle]:
        """Klines, oldest first."""
        symbol = contract_to_symbol(contract)
        try:
            data = await self._transport.request(
                "GET",
                "/fapi/v1/klines",
                {"symbol": symbol, "interval": interval, "limit": limit},
            )
            if not isinstance(data, list):
                raise ExchangeError(
                    f"Malformed klines response for {contract}",
                    body=data,
                    category=ErrorCategory.MALFORMED_RESPONSE,
                )
            candles = [self._parse_kline(row, contract) for row in data]
        except ExchangeError as e:
            logger.error(f"Failed to fetch candles for {contract}: {e}")
            raise

        return candles

    @staticmethod
    def _parse_kline(row: Any, contract: str) -> Candle:
        if not isinstance(row, (list, tuple)) or len(row) < 8:
            raise ExchangeError(
                f"Malformed kline row for {contract}: {row!r}",
                body=row,
                category=ErrorCategory.MALFORMED_RESPONSE,
            )
        return Candle(
            open_time=int(safe_parse_float(row[0])),
            open=safe_parse_float(row[1]),
            high=safe_parse_float(row[2]),
            low=safe_parse_float(row[3]),
            close=safe_parse_float(row[4]),
            volume=safe_parse_float(row[5]),
            quote_volume=safe_parse_float(row[7]),
        )

    async def get_funding_rate(self, contract: str) -> Optional[FundingRate]:
        """Most recent funding rate entry, or None when the venue has none."""
        symbol = contract_to_symbol(contract)
        try:
            data = await self._transport.request(
                "GET",
                "/fapi/v1/fundingRate",
                {"symbol": symbol, "limit": 1},
            )
            entries = parse_payload_list(FundingRateEntry, data, "/fapi/v1/fundingRate")
        except ExchangeError as e:
            logger.error(f"Failed to fetch funding rate for {contract}: {e}")
            raise

        if not entries:
            return None

        entry = entries[0]
        mark_price = None
        if entry.markPrice not in (None, ""):
            mark_price = safe_parse_float(entry.markPrice)

        return FundingRate(
            contract=contract,
            funding_rate=safe_parse_float(entry.fundingRate),
            funding_time=entry.fundingTime or 0,
            mark_price=mark_price,
        )

    async def get_order_book(self, contract: str, limit: int = 10) -> OrderBook:
        """Order book depth as (price, quantity) levels."""
        symbol = contract_to_symbol(contract)
        try:
            data = await self._transport.request(
                "GET",
                "/fapi/v1/depth",
                {"symbol": symbol, "limit": limit},
            )
            depth = parse_payload(DepthSnapshot, data, "/fapi/v1/depth")
        except ExchangeError as e:
            logger.error(f"Failed to fetch order book for {contract}: {e}")
            raise

        return OrderBook(
            contract=contract,
            bids=[(safe_parse_float(level[0]), safe_parse_float(level[1])) for level in depth.bids if len(level) >= 2],
            asks=[(safe_parse_float(level[0]), safe_parse_float(level[1])) for level in depth.asks if len(level) >= 2],
            last_update_id=depth.lastUpdateId,
        )
