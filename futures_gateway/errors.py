"""
Futures Gateway - Error Taxonomy.

============================================================
PURPOSE
============================================================
Exception hierarchy and venue error classification.

ERROR CLASSES:
1. ConfigurationError - Missing credentials, fatal at construction
2. ValidationError    - Local pre-submission checks failed
3. ExchangeError      - Venue rejected the call, network failure,
                        or the response body could not be parsed

PROPAGATION:
- Validation and venue errors always reach the caller
- Nothing in this package retries

============================================================
"""

from enum import Enum
from typing import Optional, Dict, Any


# ============================================================
# ERROR CATEGORIES
# ============================================================

class ErrorCategory(Enum):
    """Standardized venue error categories."""

    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    RATE_LIMIT = "RATE_LIMIT"
    AUTHENTICATION = "AUTHENTICATION"
    INVALID_ORDER = "INVALID_ORDER"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_PRICE = "INVALID_PRICE"
    MIN_NOTIONAL = "MIN_NOTIONAL"
    INSUFFICIENT_MARGIN = "INSUFFICIENT_MARGIN"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    SYMBOL_NOT_FOUND = "SYMBOL_NOT_FOUND"
    EXCHANGE_ERROR = "EXCHANGE_ERROR"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    UNKNOWN = "UNKNOWN"


# ============================================================
# EXCEPTIONS
# ============================================================

class GatewayError(Exception):
    """Base exception for the futures gateway."""
    pass


class ConfigurationError(GatewayError):
    """Required configuration (credentials) is missing."""
    pass


class ValidationError(GatewayError):
    """
    Order rejected locally before any network call.

    Carries a stable machine-readable code next to the message.
    """

    def __init__(self, message: str, code: str = "VALIDATION_FAILED"):
        super().__init__(message)
        self.code = code


class OrderSizeError(ValidationError):
    """Order size is zero, non-finite, or outside the contract bounds."""
    pass


class MinNotionalError(ValidationError):
    """Order value is below the contract minimum notional."""

    def __init__(self, notional: float, min_notional: float):
        super().__init__(
            f"Order notional {notional} is below minimum notional {min_notional}",
            code="NOTIONAL_BELOW_MINIMUM",
        )
        self.notional = notional
        self.min_notional = min_notional


class OrderIdError(ValidationError):
    """Order id is not in the composite SYMBOL:orderId form."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_ORDER_ID")


class ExchangeError(GatewayError):
    """
    Venue call failed.

    The venue's message and HTTP status are preserved unmodified so the
    caller sees exactly what the exchange reported.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Any = None,
        exchange_code: Optional[int] = None,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body
        self.exchange_code = exchange_code
        self.category = category

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "category": self.category.value,
            "message": self.message,
            "status": self.status,
            "exchange_code": self.exchange_code,
            "body": self.body,
        }


# ============================================================
# BINANCE ERROR MAPPING
# ============================================================

# Binance futures error codes to unified category
BINANCE_ERROR_MAP: Dict[int, ErrorCategory] = {
    # Rate limiting
    -1003: ErrorCategory.RATE_LIMIT,
    -1015: ErrorCategory.RATE_LIMIT,

    # Authentication
    -1022: ErrorCategory.AUTHENTICATION,
    -2014: ErrorCategory.AUTHENTICATION,
    -2015: ErrorCategory.AUTHENTICATION,

    # Order validation
    -1013: ErrorCategory.INVALID_ORDER,
    -1111: ErrorCategory.INVALID_QUANTITY,
    -1121: ErrorCategory.SYMBOL_NOT_FOUND,
    -4003: ErrorCategory.INVALID_QUANTITY,
    -4005: ErrorCategory.INVALID_QUANTITY,
    -4014: ErrorCategory.INVALID_PRICE,
    -4023: ErrorCategory.INVALID_QUANTITY,
    -4164: ErrorCategory.MIN_NOTIONAL,

    # Orders
    -2011: ErrorCategory.ORDER_NOT_FOUND,
    -2013: ErrorCategory.ORDER_NOT_FOUND,

    # Margin
    -2019: ErrorCategory.INSUFFICIENT_MARGIN,

    # Exchange internal
    -1000: ErrorCategory.EXCHANGE_ERROR,
    -1001: ErrorCategory.EXCHANGE_ERROR,
    -1007: ErrorCategory.TIMEOUT,
}


def classify_binance_error(
    code: Optional[int],
    http_status: Optional[int] = None,
) -> ErrorCategory:
    """
    Map a Binance error code and HTTP status to an ErrorCategory.

    Args:
        code: Binance error code from the response body, if any
        http_status: HTTP status code

    Returns:
        ErrorCategory
    """
    if code is not None and code in BINANCE_ERROR_MAP:
        return BINANCE_ERROR_MAP[code]
    if http_status in (418, 429):
        return ErrorCategory.RATE_LIMIT
    if http_status in (401, 403):
        return ErrorCategory.AUTHENTICATION
    if http_status and http_status >= 500:
        return ErrorCategory.EXCHANGE_ERROR
    return ErrorCategory.UNKNOWN


def map_binance_error(
    http_status: int,
    body: Any,
    reason: str = "",
) -> ExchangeError:
    """
    Build an ExchangeError from a failed Binance response.

    Args:
        http_status: HTTP status code
        body: Parsed JSON body, or None when the body was not JSON
        reason: HTTP reason phrase

    Returns:
        ExchangeError carrying the venue message and status
    """
    code: Optional[int] = None
    message: Optional[str] = None

    if isinstance(body, dict):
        raw_code = body.get("code")
        if isinstance(raw_code, int):
            code = raw_code
        message = body.get("msg") or body.get("message")

    if not message:
        status_text = f"{http_status} {reason}" if reason else str(http_status)
        message = f"Binance API error ({status_text})"

    return ExchangeError(
        message,
        status=http_status,
        body=body,
        exchange_code=code,
        category=classify_binance_error(code, http_status),
    )

