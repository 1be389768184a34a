"""
Futures Gateway Adapter - Request Logging.

============================================================
PURPOSE
============================================================
One structured debug line per outgoing Binance call and one
per outcome, correlated by a per-transport request id.

MASKING:
- The X-MBX-APIKEY header never appears in clear
- The signature and any key/secret parameter are cut to a
  short prefix

============================================================
"""

import itertools
import json
import logging
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Mapping, Optional


MASK = "***"

MASKED_HEADER_NAMES: FrozenSet[str] = frozenset({
    "x-mbx-apikey",
    "authorization",
})

MASKED_PARAM_NAMES: FrozenSet[str] = frozenset({
    "signature",
    "apikey",
    "secretkey",
    "api_key",
    "api_secret",
})

MAX_ERROR_LENGTH = 200


def mask_value(value: str, show_chars: int = 4) -> str:
    """Keep a short prefix of a credential: 'abcdef12' -> 'abcd...***'."""
    if not value or len(value) <= show_chars:
        return MASK
    return f"{value[:show_chars]}...{MASK}"


def _mask_mapping(values: Optional[Mapping[str, Any]], names: FrozenSet[str]) -> Dict[str, Any]:
    if not values:
        return {}
    return {
        key: mask_value(str(value)) if key.lower() in names and value else value
        for key, value in values.items()
    }


def mask_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Copy of headers with the API key masked."""
    return _mask_mapping(headers, MASKED_HEADER_NAMES)


def mask_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Copy of request parameters with the signature masked."""
    return _mask_mapping(params, MASKED_PARAM_NAMES)


@dataclass
class CallLogEntry:
    """One request or response event of a venue call."""

    event: str
    request_id: str
    path: str
    method: Optional[str] = None
    signed: Optional[bool] = None
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    status_code: Optional[int] = None
    latency_ms: Optional[float] = None
    success: Optional[bool] = None
    error_message: Optional[str] = None
    at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_json(self) -> str:
        return json.dumps(
            {k: v for k, v in asdict(self).items() if v not in (None, {})},
            default=str,
        )


class RequestLogger:
    """
    Per-transport call logger.

    Requests and successful responses go to debug, failed responses
    to warning.
    """

    def __init__(self, exchange_id: str, logger_name: Optional[str] = None):
        self._exchange_id = exchange_id
        self._logger = logging.getLogger(logger_name or f"futures_gateway.{exchange_id}")
        self._ids = itertools.count(1)

    def log_request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        signed: bool = False,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Log an outgoing call; returns its request id."""
        request_id = f"{self._exchange_id}-{next(self._ids)}"
        entry = CallLogEntry(
            event="request",
            request_id=request_id,
            path=path,
            method=method,
            signed=signed,
            params=mask_params(params),
            headers=mask_headers(headers),
        )
        self._logger.debug(f"REQUEST: {entry.to_json()}")
        return request_id

    def log_response(
        self,
        request_id: str,
        path: str,
        status_code: Optional[int],
        latency_ms: float,
        success: bool,
        error_message: Optional[str] = None,
    ) -> None:
        entry = CallLogEntry(
            event="response",
            request_id=request_id,
            path=path,
            status_code=status_code,
            latency_ms=round(latency_ms, 2),
            success=success,
            error_message=error_message[:MAX_ERROR_LENGTH] if error_message else None,
        )
        if success:
            self._logger.debug(f"RESPONSE: {entry.to_json()}")
        else:
            self._logger.warning(f"RESPONSE_ERROR: {entry.to_json()}")
