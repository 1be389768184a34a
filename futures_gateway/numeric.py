"""
Futures Gateway - Numeric Normalization.

============================================================
PURPOSE
============================================================
Step/tick rounding and number formatting for venue payloads.

ROUNDING RULE:
    Quantities and prices are always floored to the step,
    never rounded up, so a submitted value never exceeds what
    the caller authorized.

============================================================
"""

import math
from decimal import ROUND_HALF_EVEN, Context, Decimal
from typing import Any, Union


DEFAULT_PRECISION = 8
MAX_FORMAT_PRECISION = 12
STEP_EPSILON = 1e-12


def precision_from_step(step: float) -> int:
    """
    Number of decimal digits implied by a step or tick size.

    Reads the decimal or scientific representation of the value:
    0.001 -> 3, 1e-05 -> 5, 2.5e-06 -> 7, 1 -> 0.

    Args:
        step: Step or tick size

    Returns:
        Decimal digits, or 8 for a non-finite or non-positive step
    """
    if not isinstance(step, (int, float)) or not math.isfinite(step) or step <= 0:
        return DEFAULT_PRECISION

    text = repr(float(step))

    if "e" in text:
        mantissa, _, exponent = text.partition("e")
        decimals = len(mantissa.partition(".")[2].rstrip("0"))
        return max(decimals - int(exponent), 0)

    fraction = text.partition(".")[2].rstrip("0")
    return len(fraction)


def format_number(value: Union[float, Decimal], precision: int) -> str:
    """
    Render a number with at most `precision` fractional digits.

    The value is quantized as a Decimal of its shortest repr, so payload
    strings carry no binary noise. Trailing fractional zeros and a
    dangling decimal point are removed. Precision is clamped to [0, 12].
    Non-finite values render as "0".
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return "0"

    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if not amount.is_finite():
        return "0"

    digits = min(max(int(precision), 0), MAX_FORMAT_PRECISION)
    context = Context(prec=max(amount.adjusted(), 0) + digits + 2, rounding=ROUND_HALF_EVEN)
    text = f"{amount.quantize(Decimal(1).scaleb(-digits), context=context):f}"

    if "." in text:
        text = text.rstrip("0").rstrip(".")

    if text in ("", "-0"):
        return "0"
    return text


def floor_to_step(value: float, step: float) -> float:
    """
    Round value down to a multiple of step.

    A 1e-12 epsilon is added before flooring so exact multiples that
    suffer binary representation error (0.3 / 0.1) are not pushed down
    a whole step.
    """
    if not math.isfinite(value):
        return 0.0
    if not math.isfinite(step) or step <= 0:
        return value

    units = math.floor((value + STEP_EPSILON) / step)
    return units * step


def safe_parse_float(value: Any, fallback: float = 0.0) -> float:
    """
    Parse a number that may arrive as text.

    Returns fallback when the value is missing, unparseable, or not
    finite.
    """
    if isinstance(value, bool):
        return fallback

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value if value is not None else "").strip())
        except ValueError:
            return fallback

    return number if math.isfinite(number) else fallback
