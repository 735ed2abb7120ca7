"""
Payoff simulator.
Sweeps a price range through the valuation model to build a discretized payoff
curve, and derives the curve-level statistics (max profit, max loss,
break-even crossings).

Break-evens are found by linear interpolation between neighbouring samples, so
their precision is bounded by the sample density: more points trade compute
for accuracy.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple, Dict, Any

import numpy as np

from config import get_settings
from models import Transaction
from services.common import is_available
from services.valuation import compute_pnl, reference_price

logger = logging.getLogger(__name__)

DEFAULT_NUM_POINTS = 201
# Default window is [0, 2 x reference]: a symmetric +/-100% band.
RANGE_MULTIPLIER = 2.0


@dataclass
class PayoffCurve:
    """Sampled P&L of one or more transactions across a price range."""
    prices: List[float] = field(default_factory=list)
    pnl: List[float] = field(default_factory=list)
    max_profit: Optional[float] = None
    max_loss: Optional[float] = None
    max_profit_price: Optional[float] = None
    max_loss_price: Optional[float] = None
    breakevens: List[float] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.prices

    @property
    def price_min(self) -> Optional[float]:
        return self.prices[0] if self.prices else None

    @property
    def price_max(self) -> Optional[float]:
        return self.prices[-1] if self.prices else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'prices': list(self.prices),
            'pnl': list(self.pnl),
            'maxProfit': self.max_profit,
            'maxLoss': self.max_loss,
            'maxProfitPrice': self.max_profit_price,
            'maxLossPrice': self.max_loss_price,
            'breakevens': list(self.breakevens),
        }


def price_grid(price_min: float, price_max: float, num_points: int) -> List[float]:
    """num_points equally spaced prices from price_min to price_max inclusive."""
    return [float(p) for p in np.linspace(price_min, price_max, num_points)]


def find_breakevens(prices: Sequence[float], pnl: Sequence[float]) -> List[float]:
    """
    Prices where the sampled P&L changes sign.

    Between two samples of opposite sign the zero crossing is linearly
    interpolated. When the curve lands exactly on zero between samples of
    opposite sign, the first zero sample's price is the crossing. Unavailable
    (NaN) samples break the curve: no crossing is reported across them.
    """
    breakevens: List[float] = []
    last_index: Optional[int] = None

    for i, curr_pnl in enumerate(pnl):
        if not is_available(curr_pnl):
            last_index = None
            continue
        if curr_pnl == 0:
            continue

        if last_index is not None:
            prev_pnl = pnl[last_index]
            if prev_pnl * curr_pnl < 0:
                if last_index == i - 1:
                    prev_price = prices[last_index]
                    curr_price = prices[i]
                    crossing = prev_price - prev_pnl * (curr_price - prev_price) / (curr_pnl - prev_pnl)
                    breakevens.append(crossing)
                else:
                    breakevens.append(prices[last_index + 1])
        last_index = i

    return breakevens


def simulate(
    transactions: Iterable[Transaction],
    price_min: float,
    price_max: float,
    num_points: Optional[int] = None,
) -> PayoffCurve:
    """
    Simulate the combined payoff of transactions over [price_min, price_max].

    Args:
        transactions: One or more transactions (legs) valued together
        price_min: Lowest simulated underlying price
        price_max: Highest simulated underlying price
        num_points: Number of samples, including both ends (default 201)

    Returns:
        PayoffCurve; empty when the range is degenerate
    """
    if num_points is None:
        num_points = get_settings().simulation_points
    legs = list(transactions)

    if (
        not legs
        or num_points < 2
        or not (is_available(price_min) and is_available(price_max))
        or price_max <= price_min
    ):
        logger.debug(f"Degenerate simulation input: [{price_min}, {price_max}] x {num_points}")
        return PayoffCurve()

    prices = price_grid(price_min, price_max, num_points)
    pnl: List[float] = []
    curve = PayoffCurve(prices=prices, pnl=pnl)

    for price in prices:
        total = 0.0
        for leg in legs:
            total += compute_pnl(price, leg)
        pnl.append(total)

        if not is_available(total):
            continue
        if curve.max_profit is None or total > curve.max_profit:
            curve.max_profit = total
            curve.max_profit_price = price
        if curve.max_loss is None or total < curve.max_loss:
            curve.max_loss = total
            curve.max_loss_price = price

    curve.breakevens = find_breakevens(prices, pnl)
    return curve


def default_price_range(reference: float) -> Optional[Tuple[float, float]]:
    """
    Default simulation window for a reference price: [0, 2 x reference].
    Returns None when the reference price is not a positive number.
    """
    if not is_available(reference) or reference <= 0:
        return None
    return 0.0, reference * RANGE_MULTIPLIER


def zoom_range(price_min: float, price_max: float, center: float, factor: float) -> Tuple[float, float]:
    """
    Rescale a window around a fixed center price.
    factor < 1 zooms in, factor > 1 zooms out; the lower edge never goes below 0.
    """
    new_min = center + (price_min - center) * factor
    new_max = center + (price_max - center) * factor
    return max(0.0, new_min), new_max


def simulate_transaction(transaction: Transaction, num_points: Optional[int] = None) -> PayoffCurve:
    """Simulate a single transaction over its default window."""
    window = default_price_range(reference_price(transaction))
    if window is None:
        logger.warning(f"No usable reference price for transaction {transaction.id}")
        return PayoffCurve()
    return simulate([transaction], window[0], window[1], num_points)


def simulate_around(
    transactions: Iterable[Transaction],
    reference: float,
    num_points: Optional[int] = None,
) -> PayoffCurve:
    """Simulate transactions over the default window of an explicit reference price."""
    window = default_price_range(reference)
    if window is None:
        return PayoffCurve()
    return simulate(transactions, window[0], window[1], num_points)


def count_sign_changes(pnl: Sequence[float]) -> int:
    """Number of sign changes between consecutive non-zero available samples."""
    changes = 0
    previous = None
    for value in pnl:
        if not is_available(value):
            previous = None
            continue
        if value == 0:
            continue
        if previous is not None and math.copysign(1, previous) != math.copysign(1, value):
            changes += 1
        previous = value
    return changes
