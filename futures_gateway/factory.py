"""
Futures Gateway - Client Factory.

============================================================
PURPOSE
============================================================
Builds the Binance futures client and the quanto resolver
from configuration, and owns their lifecycle for the
application's composition root.

============================================================
USAGE
============================================================
```python
provider = ClientProvider()              # reads env on first use
client = provider.get_client()
order = await client.place_order("BTC_USDT", 5)
multiplier = await provider.get_quanto_resolver().get_quanto_multiplier("BTC_USDT")
await provider.close()
```

============================================================
"""

import logging
from typing import Callable, Optional

from .adapters.binance import BinanceFuturesClient, RequestTransport
from .config import GatewayConfig
from .quanto import QuantoMultiplierResolver


logger = logging.getLogger(__name__)


def create_client(
    config: Optional[GatewayConfig] = None,
    transport: Optional[RequestTransport] = None,
) -> BinanceFuturesClient:
    """
    Create a Binance futures client.

    Args:
        config: Gateway configuration (default: from environment)
        transport: Request transport override

    Raises:
        ConfigurationError: Credentials missing
    """
    return BinanceFuturesClient(config or GatewayConfig.from_env(), transport=transport)


class ClientProvider:
    """
    Lazily built, explicitly owned client and quanto resolver.

    One provider per process, held by the composition root. reset()
    drops both so tests can rebuild them.
    """

    def __init__(
        self,
        config_loader: Callable[[], GatewayConfig] = GatewayConfig.from_env,
        transport: Optional[RequestTransport] = None,
    ):
        self._config_loader = config_loader
        self._transport = transport
        self._client: Optional[BinanceFuturesClient] = None
        self._quanto: Optional[QuantoMultiplierResolver] = None

    def get_client(self) -> BinanceFuturesClient:
        """Client, built on first use."""
        if self._client is None:
            self._client = create_client(self._config_loader(), self._transport)
        return self._client

    def get_quanto_resolver(self) -> QuantoMultiplierResolver:
        """Quanto resolver backed by this provider's client."""
        if self._quanto is None:
            self._quanto = QuantoMultiplierResolver(self.get_client())
        return self._quanto

    def reset(self) -> None:
        """Forget the client and resolver without closing the session."""
        self._client = None
        self._quanto = None

    async def close(self) -> None:
        """Close the client's HTTP session and forget it."""
        if self._client is not None:
            await self._client.close()
            logger.info("Binance Futures client closed")
        self.reset()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
