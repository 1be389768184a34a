"""
Futures Gateway - Contract Metadata Cache.

============================================================
PURPOSE
============================================================
Holds per-contract trading rules and builds them either from
the venue's exchangeInfo or from a static fallback table.

CACHE POLICY:
- Entries live until clear() is called (no TTL)
- Fallback entries are cached like real ones, so a failing
  metadata fetch is not repeated for the same contract
- The map is guarded by a mutex; entries are immutable

============================================================
"""

import logging
import threading
from typing import Dict, Iterable, Optional

from .numeric import precision_from_step, safe_parse_float
from .schemas import SymbolInfo
from .symbols import base_asset_of, contract_to_symbol, symbol_to_contract
from .types import ContractInfo


logger = logging.getLogger(__name__)


# ============================================================
# STATIC FALLBACK
# ============================================================

# Binance futures LOT_SIZE step per base asset
DEFAULT_STEP_SIZES: Dict[str, float] = {
    "BTC": 0.001,
    "ETH": 0.01,
    "SOL": 0.1,
    "XRP": 1,
    "BNB": 0.1,
    "BCH": 0.01,
    "DOGE": 100,
    "ADA": 1,
}

DEFAULT_STEP_SIZE = 0.001
DEFAULT_TICK_SIZE = 0.01
DEFAULT_MIN_NOTIONAL = 5.0
FALLBACK_ORDER_SIZE_MIN = 1
FALLBACK_ORDER_SIZE_MAX = 1_000_000

SUPPORTED_CONTRACT_TYPE = "PERPETUAL"
SUPPORTED_QUOTE_ASSET = "USDT"


def default_step_size(base_asset: str) -> float:
    """Static step size for a base asset."""
    return float(DEFAULT_STEP_SIZES.get(base_asset, DEFAULT_STEP_SIZE))


# ============================================================
# BUILDERS
# ============================================================

def is_supported_symbol(
    info: SymbolInfo,
    contract_type: str = SUPPORTED_CONTRACT_TYPE,
    quote_asset: str = SUPPORTED_QUOTE_ASSET,
) -> bool:
    """Whether a listed symbol is a perpetual quoted in the supported asset."""
    return info.contractType == contract_type and info.quoteAsset == quote_asset


def build_contract_info(info: SymbolInfo) -> ContractInfo:
    """
    Build ContractInfo from one exchangeInfo symbol.

    Missing filters fall back to the static step, a 0.01 tick and a
    notional of 5. Unit bounds are the venue quantity bounds divided
    by the step.
    """
    base_asset = info.baseAsset or base_asset_of(symbol_to_contract(info.symbol))
    lot_filter = info.find_filter("LOT_SIZE")
    price_filter = info.find_filter("PRICE_FILTER")
    notional_filter = info.find_filter("MIN_NOTIONAL")

    step_size = safe_parse_float(
        lot_filter.stepSize if lot_filter else None,
        default_step_size(base_asset),
    )
    if step_size <= 0:
        step_size = default_step_size(base_asset)

    min_qty = safe_parse_float(lot_filter.minQty if lot_filter else None, step_size)
    max_qty = safe_parse_float(lot_filter.maxQty if lot_filter else None, step_size * 1_000_000)

    tick_size = safe_parse_float(price_filter.tickSize if price_filter else None, DEFAULT_TICK_SIZE)
    if tick_size <= 0:
        tick_size = DEFAULT_TICK_SIZE

    min_notional = DEFAULT_MIN_NOTIONAL
    if notional_filter is not None:
        raw_notional = notional_filter.notional
        if raw_notional is None:
            raw_notional = notional_filter.minNotional
        min_notional = safe_parse_float(raw_notional, DEFAULT_MIN_NOTIONAL)

    order_size_min = max(1, round(min_qty / step_size))
    order_size_max = max(order_size_min, round(max_qty / step_size))

    price_precision = info.pricePrecision
    if price_precision is None:
        price_precision = precision_from_step(tick_size)

    quantity_precision = info.quantityPrecision
    if quantity_precision is None:
        quantity_precision = precision_from_step(step_size)

    return ContractInfo(
        contract=symbol_to_contract(info.symbol),
        symbol=info.symbol,
        step_size=step_size,
        tick_size=tick_size,
        quanto_multiplier=step_size,
        order_size_min=order_size_min,
        order_size_max=order_size_max,
        min_notional=min_notional,
        price_precision=price_precision,
        quantity_precision=quantity_precision,
        base_asset=base_asset,
        quote_asset=info.quoteAsset or SUPPORTED_QUOTE_ASSET,
    )


def build_fallback_contract_info(contract: str) -> ContractInfo:
    """Synthesize ContractInfo for a contract the venue did not describe."""
    base_asset = base_asset_of(contract)
    step_size = default_step_size(base_asset)

    return ContractInfo(
        contract=contract,
        symbol=contract_to_symbol(contract),
        step_size=step_size,
        tick_size=DEFAULT_TICK_SIZE,
        quanto_multiplier=step_size,
        order_size_min=FALLBACK_ORDER_SIZE_MIN,
        order_size_max=FALLBACK_ORDER_SIZE_MAX,
        min_notional=DEFAULT_MIN_NOTIONAL,
        price_precision=precision_from_step(DEFAULT_TICK_SIZE),
        quantity_precision=precision_from_step(step_size),
        base_asset=base_asset,
        quote_asset=SUPPORTED_QUOTE_ASSET,
        is_fallback=True,
    )


# ============================================================
# CACHE
# ============================================================

class ContractCache:
    """
    Mutex-guarded map of contract name to ContractInfo.

    No I/O happens while the lock is held.
    """

    def __init__(self):
        self._entries: Dict[str, ContractInfo] = {}
        self._lock = threading.Lock()

    def get(self, contract: str) -> Optional[ContractInfo]:
        with self._lock:
            return self._entries.get(contract)

    def put(self, info: ContractInfo) -> None:
        with self._lock:
            self._entries[info.contract] = info

    def put_many(self, infos: Iterable[ContractInfo]) -> int:
        """Insert a batch; returns the number of entries written."""
        count = 0
        with self._lock:
            for info in infos:
                self._entries[info.contract] = info
                count += 1
        return count

    def setdefault(self, info: ContractInfo) -> ContractInfo:
        """Insert unless present; returns the entry that ends up cached."""
        with self._lock:
            return self._entries.setdefault(info.contract, info)

    def snapshot(self) -> Dict[str, ContractInfo]:
        """Copy of all entries."""
        with self._lock:
            return dict(self._entries)

    def clear(self, contract: Optional[str] = None) -> None:
        """Drop one entry or everything."""
        with self._lock:
            if contract is None:
                self._entries.clear()
            else:
                self._entries.pop(contract, None)
        logger.debug(f"Cleared contract cache ({contract or 'all'})")

    def has_venue_entries(self) -> bool:
        """True when at least one entry came from the venue."""
        with self._lock:
            return any(not info.is_fallback for info in self._entries.values())

    def __contains__(self, contract: str) -> bool:
        with self._lock:
            return contract in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
