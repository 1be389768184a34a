"""
Futures Gateway - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the futures gateway client.

CREDENTIALS:
- Loaded from environment (optionally via a .env file)
- Missing key or secret is a hard construction-time failure

============================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Mapping

from dotenv import load_dotenv

from .errors import ConfigurationError


TRUE_VALUES = {"1", "true", "yes", "on"}


# ============================================================
# TIMEOUT CONFIGURATION
# ============================================================

@dataclass
class TimeoutConfig:
    """
    HTTP timeouts applied to the aiohttp session.
    """

    connection_timeout_seconds: float = 5.0
    """Connection timeout."""

    read_timeout_seconds: float = 30.0
    """Total timeout for one request."""


# ============================================================
# EXCHANGE CONFIGURATION
# ============================================================

@dataclass
class ExchangeConfig:
    """
    Exchange-specific configuration.
    """

    testnet: bool = False
    """Whether to use testnet."""

    # Endpoints
    rest_url: str = "https://fapi.binance.com"
    """Mainnet REST API base URL."""

    testnet_rest_url: str = "https://testnet.binancefuture.com"
    """Testnet REST API base URL."""

    # Credentials (loaded from env)
    api_key_env: str = "BINANCE_API_KEY"
    """Environment variable for API key."""

    api_secret_env: str = "BINANCE_API_SECRET"
    """Environment variable for API secret."""

    testnet_env: str = "BINANCE_USE_TESTNET"
    """Environment variable for the testnet flag."""

    legacy_env_prefix: str = "GATE"
    """Prefix of older variable names still honored as fallbacks."""

    # Signing
    recv_window_ms: int = 5000
    """recvWindow sent with signed requests."""

    # Universe
    quote_asset: str = "USDT"
    """Only contracts quoted in this asset are loaded."""

    contract_type: str = "PERPETUAL"
    """Only contracts of this type are loaded."""

    @property
    def base_url(self) -> str:
        """REST base URL for the selected network."""
        return self.testnet_rest_url if self.testnet else self.rest_url


# ============================================================
# MASTER CONFIGURATION
# ============================================================

@dataclass
class GatewayConfig:
    """
    Master configuration for the futures gateway.
    """

    api_key: str = ""
    api_secret: str = ""

    exchange: ExchangeConfig = field(default_factory=ExchangeConfig)
    """Exchange configuration."""

    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    """Timeout configuration."""

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: API key or secret missing
        """
        if not self.api_key or not self.api_secret:
            raise ConfigurationError(
                f"{self.exchange.api_key_env} and {self.exchange.api_secret_env} "
                f"must be set in the environment"
            )

    @classmethod
    def from_env(
        cls,
        exchange: Optional[ExchangeConfig] = None,
        timeout: Optional[TimeoutConfig] = None,
        environ: Optional[Mapping[str, str]] = None,
        use_dotenv: bool = True,
    ) -> "GatewayConfig":
        """
        Create config from environment variables.

        Args:
            exchange: Exchange configuration (env var names, URLs)
            timeout: Timeout configuration
            environ: Mapping to read instead of os.environ
            use_dotenv: Load a .env file into os.environ first

        Returns:
            Validated GatewayConfig

        Raises:
            ConfigurationError: Credentials missing
        """
        if use_dotenv and environ is None:
            load_dotenv()

        env = os.environ if environ is None else environ
        exchange = exchange or ExchangeConfig()
        legacy = exchange.legacy_env_prefix

        api_key = env.get(exchange.api_key_env) or env.get(f"{legacy}_API_KEY", "")
        api_secret = env.get(exchange.api_secret_env) or env.get(f"{legacy}_API_SECRET", "")
        testnet = (
            env.get(exchange.testnet_env, "").strip().lower() in TRUE_VALUES
            or env.get(f"{legacy}_USE_TESTNET", "").strip().lower() in TRUE_VALUES
        )
        exchange.testnet = exchange.testnet or testnet

        config = cls(
            api_key=api_key,
            api_secret=api_secret,
            exchange=exchange,
            timeout=timeout or TimeoutConfig(),
        )
        config.validate()
        return config

    @classmethod
    def for_testing(cls) -> "GatewayConfig":
        """Get configuration for testing."""
        return cls(
            api_key="test_key",
            api_secret="test_secret",
            exchange=ExchangeConfig(testnet=True),
        )
