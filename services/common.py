"""
Common utilities and shared value types.
Symbol normalization, number sanitizing, the bounded/unbounded Amount value
and display formatting used by every service.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

logger = logging.getLogger(__name__)

# JSON has no literal infinity; these tokens stand in for it on the wire.
POSITIVE_INFINITY_TOKEN = "Infinity"
NEGATIVE_INFINITY_TOKEN = "-Infinity"
NAN_TOKEN = "NaN"

UNAVAILABLE = "N/A"


def normalize_symbol(symbol: Optional[str]) -> str:
    """
    Normalize a ticker symbol for storage and grouping.

    Examples:
        >>> normalize_symbol(" aapl ")
        'AAPL'
        >>> normalize_symbol("nesn.sw")
        'NESN.SW'
    """
    return (symbol or "").strip().upper()


def to_number(value: Any) -> float:
    """
    Coerce a stored field to float. Missing or unparsable values become NaN so
    arithmetic keeps flowing and the result renders as unavailable.
    """
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def is_available(value: Optional[float]) -> bool:
    """True for a real, finite number."""
    return value is not None and not math.isnan(value) and not math.isinf(value)


@dataclass(frozen=True)
class Amount:
    """
    A money amount that is either bounded (a plain float) or theoretically
    unbounded in one direction.

    direction is 0 for a bounded amount, -1 for "-inf" and +1 for "+inf".
    value carries the number for bounded amounts and is ignored otherwise.
    """
    value: float = 0.0
    direction: int = 0

    @classmethod
    def bounded(cls, value: float) -> "Amount":
        return cls(value=float(value), direction=0)

    @classmethod
    def unbounded(cls, direction: int = -1) -> "Amount":
        if direction not in (-1, 1):
            raise ValueError(f"Unbounded direction must be -1 or 1, got {direction}")
        return cls(value=0.0, direction=direction)

    @property
    def is_unbounded(self) -> bool:
        return self.direction != 0

    @property
    def is_available(self) -> bool:
        return self.is_unbounded or not math.isnan(self.value)

    def __add__(self, other: Union["Amount", float, int]) -> "Amount":
        if not isinstance(other, Amount):
            other = Amount.bounded(other)
        if self.is_unbounded and other.is_unbounded and self.direction != other.direction:
            # inf - inf has no meaningful value
            return Amount.bounded(math.nan)
        if self.is_unbounded:
            return self
        if other.is_unbounded:
            return other
        return Amount.bounded(self.value + other.value)

    __radd__ = __add__

    def __neg__(self) -> "Amount":
        if self.is_unbounded:
            return Amount.unbounded(-self.direction)
        return Amount.bounded(-self.value)

    def __abs__(self) -> "Amount":
        if self.is_unbounded:
            return Amount.unbounded(1)
        return Amount.bounded(abs(self.value))

    def __mul__(self, factor: float) -> "Amount":
        """Scale by a positive factor, e.g. a currency conversion."""
        if self.is_unbounded:
            return self
        return Amount.bounded(self.value * factor)

    def __truediv__(self, divisor: float) -> "Amount":
        if self.is_unbounded:
            return self
        return Amount.bounded(self.value / divisor)

    def as_float(self) -> float:
        """IEEE view of the amount, for charting only."""
        if self.is_unbounded:
            return math.inf * self.direction
        return self.value

    def to_json(self) -> Union[float, str]:
        """Encode for JSON, using string tokens for the non-finite cases."""
        if self.direction < 0:
            return NEGATIVE_INFINITY_TOKEN
        if self.direction > 0:
            return POSITIVE_INFINITY_TOKEN
        return encode_number(self.value)

    @classmethod
    def from_json(cls, raw: Union[float, int, str, None]) -> "Amount":
        if raw == NEGATIVE_INFINITY_TOKEN:
            return cls.unbounded(-1)
        if raw == POSITIVE_INFINITY_TOKEN:
            return cls.unbounded(1)
        if raw is None:
            return cls.bounded(math.nan)
        return cls.bounded(decode_number(raw))

    def format(self, currency: Optional[str] = None, digits: int = 2) -> str:
        """Display text; unbounded amounts use the infinity glyph, never a number."""
        if self.direction < 0:
            return "-∞"
        if self.direction > 0:
            return "∞"
        return format_number(self.value, currency, digits)


def sum_amounts(amounts: Iterable[Amount]) -> Amount:
    """Sum amounts; any -inf term makes the total -inf."""
    total = Amount.bounded(0.0)
    for amount in amounts:
        total = total + amount
    return total


def encode_number(value: Optional[float]) -> Union[float, str, None]:
    """Encode a float for JSON; non-finite values become string tokens."""
    if value is None:
        return None
    if math.isnan(value):
        return NAN_TOKEN
    if math.isinf(value):
        return POSITIVE_INFINITY_TOKEN if value > 0 else NEGATIVE_INFINITY_TOKEN
    return value


def decode_number(raw: Union[float, int, str, None]) -> Optional[float]:
    """Inverse of encode_number."""
    if raw is None:
        return None
    if raw == NAN_TOKEN:
        return math.nan
    if raw == POSITIVE_INFINITY_TOKEN:
        return math.inf
    if raw == NEGATIVE_INFINITY_TOKEN:
        return -math.inf
    return float(raw)


def format_number(value: Optional[float], currency: Optional[str] = None, digits: int = 2) -> str:
    """Format a number for display; missing/NaN values render as unavailable."""
    if value is None or math.isnan(value):
        return UNAVAILABLE
    if math.isinf(value):
        return "∞" if value > 0 else "-∞"
    text = f"{value:,.{digits}f}"
    return f"{text} {currency}" if currency else text
