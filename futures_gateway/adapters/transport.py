"""
Futures Gateway Adapter - Binance REST Transport.

============================================================
PURPOSE
============================================================
Signed and unsigned HTTP calls to the Binance USDT-M futures
REST API.

BEHAVIOR:
- HMAC-SHA256 request signing
- Venue errors raised as ExchangeError with status and body
- Network failures and timeouts raised as ExchangeError
- No retries

============================================================
"""

import asyncio
import hashlib
import hmac
import json
import logging
import time
from typing import Optional, Dict, Any, Tuple
from urllib.parse import urlencode

import aiohttp

from ..config import GatewayConfig
from ..errors import ExchangeError, ErrorCategory, map_binance_error
from .logging_utils import RequestLogger


logger = logging.getLogger(__name__)


API_KEY_HEADER = "X-MBX-APIKEY"
BODY_METHODS = {"POST", "PUT"}


def sign_query(query_string: str, api_secret: str) -> str:
    """HMAC-SHA256 hex digest of a url-encoded query."""
    return hmac.new(
        api_secret.encode(),
        query_string.encode(),
        hashlib.sha256,
    ).hexdigest()


def clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Drop None/empty values and stringify the rest, keeping order."""
    cleaned: Dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        cleaned[key] = str(value)
    return cleaned


# ============================================================
# TRANSPORT
# ============================================================

class BinanceRestTransport:
    """
    Binance futures REST transport.

    The aiohttp session is created on first use and released by
    close().
    """

    def __init__(
        self,
        config: GatewayConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize transport.

        Args:
            config: Gateway configuration (credentials, URLs, timeouts)
            session: Pre-built session; not closed by this transport
        """
        self._config = config
        self._api_key = config.api_key
        self._api_secret = config.api_secret
        self._base_url = config.exchange.base_url
        self._session = session
        self._owns_session = session is None
        self._request_logger = RequestLogger("binance_futures")

    @property
    def base_url(self) -> str:
        return self._base_url

    # --------------------------------------------------------
    # SESSION
    # --------------------------------------------------------

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                connect=self._config.timeout.connection_timeout_seconds,
                total=self._config.timeout.read_timeout_seconds,
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this transport created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # --------------------------------------------------------
    # REQUESTS
    # --------------------------------------------------------

    def prepare(
        self,
        params: Optional[Dict[str, Any]] = None,
        signed: bool = False,
    ) -> Tuple[str, Dict[str, str]]:
        """
        Build the url-encoded payload and headers for one call.

        Signed calls get timestamp, recvWindow and signature appended
        and carry the API key header.
        """
        payload = clean_params(params)
        headers: Dict[str, str] = {}

        if signed:
            payload["timestamp"] = str(int(time.time() * 1000))
            payload["recvWindow"] = str(self._config.exchange.recv_window_ms)
            query_string = urlencode(payload)
            query_string = f"{query_string}&signature={sign_query(query_string, self._api_secret)}"
            headers[API_KEY_HEADER] = self._api_key
        else:
            query_string = urlencode(payload)

        return query_string, headers

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        signed: bool = False,
    ) -> Any:
        """
        Make API request.

        Args:
            method: HTTP method
            path: API path, e.g. /fapi/v1/order
            params: Query or form parameters
            signed: Sign the request with the API secret

        Returns:
            Parsed JSON body

        Raises:
            ExchangeError: Non-2xx response, malformed body, network
                failure or timeout
        """
        method = method.upper()
        query_string, headers = self.prepare(params, signed)

        url = f"{self._base_url}{path}"
        data = None
        if method in BODY_METHODS:
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            data = query_string
        elif query_string:
            url = f"{url}?{query_string}"

        request_id = self._request_logger.log_request(method, path, params, signed, headers)
        started = time.monotonic()
        status: Optional[int] = None

        try:
            async with self._get_session().request(
                method,
                url,
                data=data,
                headers=headers,
            ) as response:
                status = response.status
                text = await response.text()
                body = self._decode_body(text)

                if not 200 <= status < 300:
                    raise map_binance_error(status, body, response.reason or "")

                if body is None:
                    raise ExchangeError(
                        f"Malformed response body from {path}",
                        status=status,
                        body=text[:200],
                        category=ErrorCategory.MALFORMED_RESPONSE,
                    )

        except ExchangeError as e:
            self._log_failure(request_id, path, status, started, e.message)
            raise
        except asyncio.TimeoutError:
            self._log_failure(request_id, path, status, started, "Request timeout")
            raise ExchangeError(
                "Request timeout",
                category=ErrorCategory.TIMEOUT,
            )
        except aiohttp.ClientError as e:
            self._log_failure(request_id, path, status, started, str(e))
            raise ExchangeError(
                f"Network error: {e}",
                category=ErrorCategory.NETWORK,
            ) from e

        self._request_logger.log_response(
            request_id,
            path,
            status,
            (time.monotonic() - started) * 1000,
            success=True,
        )
        return body

    @staticmethod
    def _decode_body(text: str) -> Any:
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return None

    def _log_failure(
        self,
        request_id: str,
        path: str,
        status: Optional[int],
        started: float,
        message: str,
    ) -> None:
        self._request_logger.log_response(
            request_id,
            path,
            status,
            (time.monotonic() - started) * 1000,
            success=False,
            error_message=message,
        )
