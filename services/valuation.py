"""
Position valuation model.
Terminal (expiry-style) P&L of a single stock or option transaction at a
hypothetical underlying price, and the static risk metrics of the position.
No time value, no volatility, no discounting.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any

from models import Transaction, AssetType, Action, OPTION_TYPES
from services.common import Amount, to_number

logger = logging.getLogger(__name__)

# One option contract covers 100 shares of the underlying.
CONTRACT_MULTIPLIER = 100


@dataclass(frozen=True)
class RiskMetrics:
    """Static metrics of one position, independent of any simulated price."""
    invested_amount: float
    premium_income: float
    risk_exposure: Amount
    break_even: float
    realized_income: float
    max_profit: Amount
    max_loss: Amount

    def to_dict(self) -> Dict[str, Any]:
        """Plain-value view for the rendering layer."""
        return {
            'investedAmount': self.invested_amount,
            'premiumIncome': self.premium_income,
            'riskExposure': self.risk_exposure,
            'breakEven': self.break_even,
            'realizedIncome': self.realized_income,
            'maxProfit': self.max_profit,
            'maxLoss': self.max_loss,
        }


def direction_of(action: Action) -> int:
    """+1 for a long (bought) position, -1 for a short (sold) one."""
    if action == Action.BUY:
        return 1
    if action == Action.SELL:
        return -1
    raise ValueError(f"Unknown action: {action}")


def intrinsic_value(asset_type: AssetType, price: float, strike: float) -> float:
    """Exercise value of one option share at the given underlying price."""
    if asset_type == AssetType.CALL_OPTION:
        return max(0.0, price - strike)
    if asset_type == AssetType.PUT_OPTION:
        return max(0.0, strike - price)
    raise ValueError(f"Not an option type: {asset_type}")


def compute_stock_pnl(price: float, transaction: Transaction) -> float:
    quantity = to_number(transaction.quantity)
    fees = to_number(transaction.fees)
    entry = to_number(transaction.transaction_price)
    direction = direction_of(transaction.action)
    return (price - entry) * quantity * direction - fees * quantity


def compute_option_pnl(price: float, transaction: Transaction) -> float:
    quantity = to_number(transaction.quantity)
    fees = to_number(transaction.fees)
    premium = to_number(transaction.premium)
    strike = to_number(transaction.strike_price)
    direction = direction_of(transaction.action)
    intrinsic = intrinsic_value(transaction.asset_type, price, strike)
    return (intrinsic - premium) * quantity * CONTRACT_MULTIPLIER * direction - fees * quantity


def compute_pnl(hypothetical_price: float, transaction: Transaction) -> float:
    """
    P&L of a transaction if the underlying were at hypothetical_price.

    Args:
        hypothetical_price: Simulated underlying price
        transaction: Stock or option transaction

    Returns:
        Signed amount in the transaction currency (NaN if a field is missing)
    """
    if transaction.asset_type == AssetType.STOCK:
        return compute_stock_pnl(hypothetical_price, transaction)
    if transaction.asset_type in OPTION_TYPES:
        return compute_option_pnl(hypothetical_price, transaction)
    raise ValueError(f"Unknown asset type: {transaction.asset_type}")


def _stock_metrics(transaction: Transaction) -> RiskMetrics:
    price = to_number(transaction.transaction_price)
    quantity = to_number(transaction.quantity)
    fees = to_number(transaction.fees)

    if transaction.action == Action.BUY:
        invested = price * quantity + fees * quantity
        return RiskMetrics(
            invested_amount=invested,
            premium_income=0.0,
            risk_exposure=Amount.bounded(-invested),
            break_even=price + fees,
            realized_income=0.0,
            max_profit=Amount.unbounded(1),
            max_loss=Amount.bounded(-invested),
        )

    proceeds = price * quantity - fees * quantity
    return RiskMetrics(
        invested_amount=0.0,
        premium_income=0.0,
        risk_exposure=Amount.bounded(0.0),
        break_even=price - fees,
        realized_income=proceeds,
        max_profit=Amount.bounded(proceeds),
        max_loss=Amount.unbounded(-1),
    )


def _option_metrics(transaction: Transaction) -> RiskMetrics:
    strike = to_number(transaction.strike_price)
    premium = to_number(transaction.premium)
    quantity = to_number(transaction.quantity)
    fees = to_number(transaction.fees)
    is_call = transaction.asset_type == AssetType.CALL_OPTION

    break_even = strike + premium if is_call else strike - premium
    premium_total = premium * quantity * CONTRACT_MULTIPLIER

    if transaction.action == Action.BUY:
        invested = premium_total + fees * quantity
        if is_call:
            max_profit = Amount.unbounded(1)
        else:
            max_profit = Amount.bounded((strike - premium) * quantity * CONTRACT_MULTIPLIER - fees * quantity)
        return RiskMetrics(
            invested_amount=invested,
            premium_income=0.0,
            risk_exposure=Amount.bounded(-invested),
            break_even=break_even,
            realized_income=0.0,
            max_profit=max_profit,
            max_loss=Amount.bounded(-invested),
        )

    income = premium_total - fees * quantity
    if is_call:
        # Uncovered call: the underlying can rise without limit
        risk = Amount.unbounded(-1)
        max_loss = Amount.unbounded(-1)
    else:
        risk = Amount.bounded(-(strike * quantity * CONTRACT_MULTIPLIER - income))
        max_loss = Amount.bounded(-((strike - premium) * quantity * CONTRACT_MULTIPLIER + fees * quantity))
    return RiskMetrics(
        invested_amount=0.0,
        premium_income=income,
        risk_exposure=risk,
        break_even=break_even,
        realized_income=0.0,
        max_profit=Amount.bounded(income),
        max_loss=max_loss,
    )


def compute_risk_metrics(transaction: Transaction) -> RiskMetrics:
    """
    Static risk metrics of a single transaction.

    Returns:
        RiskMetrics with invested amount, premium income, risk exposure
        (possibly unbounded), break-even, realized income and max profit/loss
    """
    if transaction.asset_type == AssetType.STOCK:
        return _stock_metrics(transaction)
    if transaction.asset_type in OPTION_TYPES:
        return _option_metrics(transaction)
    raise ValueError(f"Unknown asset type: {transaction.asset_type}")


def reference_price(transaction: Transaction) -> float:
    """
    Price the payoff chart of a transaction is centred on: the trade price for
    stocks, the underlying price (or the strike when unset) for options.
    """
    if transaction.asset_type == AssetType.STOCK:
        return to_number(transaction.transaction_price)
    underlying = to_number(transaction.underlying_asset_price)
    if underlying > 0:
        return underlying
    return to_number(transaction.strike_price)
