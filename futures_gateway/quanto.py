"""
Futures Gateway - Quanto Multiplier Resolver.

============================================================
PURPOSE
============================================================
Resolves how much base asset one order unit represents, for
PnL computation outside the client.

CACHE POLICY:
- Independent of the client's contract cache
- Successful lookups and static fallbacks are both cached,
  so a failing lookup is not repeated for the same contract

============================================================
"""

import asyncio
import logging
import math
import threading
from typing import Dict, Iterable, Optional, Protocol, Tuple

from .symbols import base_asset_of
from .types import ContractInfo, PreloadResult


logger = logging.getLogger(__name__)


# Binance futures step per base asset (one unit = one step)
DEFAULT_MULTIPLIERS: Dict[str, float] = {
    "BTC": 0.001,
    "ETH": 0.01,
    "SOL": 0.1,
    "XRP": 1,
    "BNB": 0.01,
    "BCH": 0.01,
    "DOGE": 100,
    "ADA": 1,
}

DEFAULT_MULTIPLIER = 0.01


class ContractInfoSource(Protocol):
    async def get_contract_info(self, contract: str) -> ContractInfo:
        ...


def default_multiplier(contract: str) -> float:
    """Static multiplier for a contract's base asset."""
    return float(DEFAULT_MULTIPLIERS.get(base_asset_of(contract), DEFAULT_MULTIPLIER))


class QuantoMultiplierResolver:
    """
    Cached contract -> quanto multiplier lookup.

    Never raises: a failed lookup resolves to the static table.
    """

    def __init__(self, source: ContractInfoSource):
        """
        Args:
            source: Anything exposing async get_contract_info(contract),
                normally the BinanceFuturesClient
        """
        self._source = source
        self._cache: Dict[str, Tuple[float, bool]] = {}
        self._lock = threading.Lock()

    def cached(self, contract: str) -> Optional[float]:
        entry = self._cached_entry(contract)
        return entry[0] if entry else None

    def _cached_entry(self, contract: str) -> Optional[Tuple[float, bool]]:
        with self._lock:
            return self._cache.get(contract)

    def _store(self, contract: str, multiplier: float, from_venue: bool) -> None:
        with self._lock:
            self._cache[contract] = (multiplier, from_venue)

    async def _lookup(self, contract: str) -> Tuple[float, bool]:
        """Returns (multiplier, from_venue); synthesized metadata is not from the venue."""
        info = await self._source.get_contract_info(contract)
        multiplier = info.quanto_multiplier or info.step_size
        if not isinstance(multiplier, (int, float)) or not math.isfinite(multiplier) or multiplier <= 0:
            raise ValueError(f"Invalid quanto multiplier: {multiplier}")
        return float(multiplier), not getattr(info, "is_fallback", False)

    async def _resolve(self, contract: str, use_cache: bool) -> Tuple[float, bool]:
        """Returns (multiplier, from_venue)."""
        if use_cache:
            entry = self._cached_entry(contract)
            if entry is not None:
                logger.debug(f"Using cached quanto multiplier for {contract}: {entry[0]}")
                return entry

        try:
            multiplier, from_venue = await self._lookup(contract)
            logger.debug(f"Fetched quanto multiplier for {contract}: {multiplier}")
        except Exception as e:
            multiplier = default_multiplier(contract)
            from_venue = False
            logger.warning(
                f"Failed to fetch contract info for {contract}: {e}, "
                f"using default quanto multiplier {multiplier}"
            )

        if use_cache:
            self._store(contract, multiplier, from_venue)
        return multiplier, from_venue

    async def get_quanto_multiplier(self, contract: str, use_cache: bool = True) -> float:
        """
        Base-asset quantity represented by one order unit.

        Args:
            contract: Contract name, e.g. BTC_USDT
            use_cache: Read and write the resolver cache

        Returns:
            Multiplier from the venue, or the static fallback
        """
        multiplier, _ = await self._resolve(contract, use_cache)
        return multiplier

    def clear_quanto_multiplier_cache(self, contract: Optional[str] = None) -> None:
        """Clear one contract or the whole cache."""
        with self._lock:
            if contract:
                self._cache.pop(contract, None)
            else:
                self._cache.clear()
        logger.debug(f"Cleared quanto multiplier cache ({contract or 'all'})")

    async def preload_quanto_multipliers(self, contracts: Iterable[str]) -> PreloadResult:
        """
        Warm the cache for a batch of contracts concurrently.

        Individual failures resolve to the fallback; the batch itself
        never fails.
        """
        contracts = list(contracts)
        logger.info(f"Preloading quanto multipliers for {len(contracts)} contracts...")

        outcomes = await asyncio.gather(
            *(self._resolve(contract, True) for contract in contracts),
            return_exceptions=True,
        )

        result = PreloadResult(attempted=len(contracts))
        for contract, outcome in zip(contracts, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Preload failed for {contract}: {outcome}")
                continue
            multiplier, from_venue = outcome
            result.succeeded += 1
            result.multipliers[contract] = multiplier
            if not from_venue:
                result.fallbacks += 1

        logger.info(
            f"Preloaded {result.succeeded}/{result.attempted} quanto multipliers "
            f"({result.fallbacks} from defaults)"
        )
        return result
