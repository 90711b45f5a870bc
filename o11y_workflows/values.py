"""
Value coercions shared by substitution and conditions.

Workflow documents are written with JavaScript semantics in mind, so
stringification, numeric coercion and truthiness follow String(), Number()
and Boolean().
"""
import json
import math
import re
from decimal import Decimal

from o11y_workflows.definitions import JsonValue
from o11y_workflows.paths import MISSING

_NUMBER_RE = re.compile(
    r"^[+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)$",
    re.ASCII,
)

# Integers at or beyond this magnitude print in exponent form
_EXPONENT_THRESHOLD = 10**21


def parse_number(text: str) -> float | None:
    """Parse a numeric literal, or return None when `text` is not one."""
    candidate = text.strip()
    if not _NUMBER_RE.match(candidate):
        return None
    return float(candidate)


def format_number(value: float) -> str:
    """Number formatting as done by String(): shortest digits, JS exponent rules."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    decimal = Decimal(repr(abs(value))).normalize()
    _, digit_tuple, exponent = decimal.as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = exponent + k  # position of the decimal point relative to the digits

    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        body = "0." + "0" * -n + digits
    else:
        e = n - 1
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        body = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return sign + body


def stringify(value: JsonValue) -> str:
    """String form of a resolved value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        if abs(value) < _EXPONENT_THRESHOLD:
            return str(value)
        return format_number(to_number(value))
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


def to_number(value: JsonValue) -> float:
    """Numeric coercion; anything non-numeric becomes NaN."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, str):
        if not value.strip():
            return 0.0
        number = parse_number(value)
        return math.nan if number is None else number
    return math.nan


def is_truthy(value: JsonValue) -> bool:
    """Falsy: MISSING, None, False, 0, NaN and the empty string."""
    if value is MISSING or value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return True
