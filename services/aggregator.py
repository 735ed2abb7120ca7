"""
Portfolio aggregator.
Groups transactions by symbol into multi-leg strategies, sums the static risk
metrics per category in EUR, and derives the portfolio risk/reward ratio and
each position's share of total exposure.

Every public call reads a fresh snapshot from the repository, so repeated calls
return identical results and never accumulate state.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

from models import Transaction, AssetType, Action, OPTION_TYPES
from repositories import TransactionRepository
from services.common import Amount, is_available, normalize_symbol, to_number
from services.fx import FxRateService, FxRates, convert_to_eur, BASE_CURRENCY
from services.simulator import PayoffCurve, simulate_around
from services.valuation import RiskMetrics, compute_risk_metrics

logger = logging.getLogger(__name__)

STOCKS = "stocks"
BOUGHT_OPTIONS = "bought_options"
SOLD_OPTIONS = "sold_options"
CATEGORIES = (STOCKS, BOUGHT_OPTIONS, SOLD_OPTIONS)


def category_of(transaction: Transaction) -> str:
    if transaction.asset_type == AssetType.STOCK:
        return STOCKS
    if transaction.asset_type in OPTION_TYPES:
        return BOUGHT_OPTIONS if transaction.action == Action.BUY else SOLD_OPTIONS
    raise ValueError(f"Unknown asset type: {transaction.asset_type}")


@dataclass
class MetricTotals:
    """Running sums of the static metrics of several positions."""
    invested_amount: float = 0.0
    premium_income: float = 0.0
    realized_income: float = 0.0
    risk_exposure: Amount = field(default_factory=lambda: Amount.bounded(0.0))
    count: int = 0

    def add(self, metrics: RiskMetrics, currency: str = BASE_CURRENCY,
            rates: Optional[FxRates] = None) -> None:
        self.invested_amount += convert_to_eur(metrics.invested_amount, currency, rates)
        self.premium_income += convert_to_eur(metrics.premium_income, currency, rates)
        self.realized_income += convert_to_eur(metrics.realized_income, currency, rates)
        self.risk_exposure = self.risk_exposure + convert_to_eur(metrics.risk_exposure, currency, rates)
        self.count += 1

    def merge(self, other: "MetricTotals") -> None:
        self.invested_amount += other.invested_amount
        self.premium_income += other.premium_income
        self.realized_income += other.realized_income
        self.risk_exposure = self.risk_exposure + other.risk_exposure
        self.count += other.count

    @property
    def total_income(self) -> float:
        return self.premium_income + self.realized_income

    def to_dict(self) -> Dict[str, Any]:
        return {
            'investedAmount': self.invested_amount,
            'premiumIncome': self.premium_income,
            'realizedIncome': self.realized_income,
            'riskExposure': self.risk_exposure,
            'count': self.count,
        }


@dataclass
class PositionMetrics:
    """A transaction together with its static metrics and portfolio share."""
    transaction: Transaction
    metrics: RiskMetrics
    portfolio_share: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        data = self.metrics.to_dict()
        data['id'] = self.transaction.id
        data['portfolioShare'] = self.portfolio_share
        return data


@dataclass
class StrategyView:
    """Combined payoff and summed metrics of all legs on one symbol."""
    symbol: str
    currency: str
    reference_price: Optional[float]
    curve: PayoffCurve
    totals: MetricTotals
    transactions: List[Transaction]

    def to_dict(self) -> Dict[str, Any]:
        data = self.totals.to_dict()
        data.update({
            'symbol': self.symbol,
            'currency': self.currency,
            'referencePrice': self.reference_price,
            'curve': self.curve.to_dict(),
            'transactionIds': [t.id for t in self.transactions],
        })
        return data


@dataclass
class PortfolioSummary:
    """Portfolio-wide totals in EUR."""
    categories: Dict[str, MetricTotals]
    total: MetricTotals
    risk_reward_ratio: Optional[float]
    fx_rates: Optional[FxRates]
    currency: str = BASE_CURRENCY

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {name: totals.to_dict() for name, totals in self.categories.items()}
        data['total'] = self.total.to_dict()
        data['riskRewardRatio'] = self.risk_reward_ratio
        data['currency'] = self.currency
        data['fxRates'] = self.fx_rates.to_dict() if self.fx_rates else None
        return data


def group_by_symbol(transactions: List[Transaction]) -> Dict[str, List[Transaction]]:
    """Group transactions by symbol, keeping first-seen symbol order."""
    groups: Dict[str, List[Transaction]] = {}
    for t in transactions:
        groups.setdefault(t.symbol, []).append(t)
    return groups


def strategy_reference_price(transactions: List[Transaction]) -> Optional[float]:
    """
    Highest relevant price among the legs: stock trade prices, and for options
    the larger of strike and underlying price. None when nothing is positive.
    """
    best = None
    for t in transactions:
        if t.asset_type == AssetType.STOCK:
            candidates = [to_number(t.transaction_price)]
        else:
            candidates = [to_number(t.strike_price), to_number(t.underlying_asset_price)]
        for price in candidates:
            if is_available(price) and price > 0 and (best is None or price > best):
                best = price
    return best


def risk_reward_ratio(totals: MetricTotals) -> Optional[float]:
    """
    (total income - total invested) / |total risk|, defined only for a finite
    negative risk and a positive net income.
    """
    risk = totals.risk_exposure
    if risk.is_unbounded or not is_available(risk.value) or risk.value >= 0:
        return None
    net_income = totals.total_income - totals.invested_amount
    if not is_available(net_income) or net_income <= 0:
        return None
    return net_income / abs(risk.value)


def position_exposure(metrics: RiskMetrics) -> Optional[float]:
    """
    Absolute exposure of one position: its bounded risk when non-zero, else its
    invested amount. None for unbounded risk.
    """
    risk = metrics.risk_exposure
    if risk.is_unbounded:
        return None
    if is_available(risk.value) and risk.value != 0:
        return abs(risk.value)
    invested = metrics.invested_amount
    return abs(invested) if is_available(invested) else 0.0


def portfolio_shares(exposures: List[Optional[float]]) -> List[Optional[float]]:
    """Percent share of each exposure in the bounded total; unbounded stays None."""
    total = sum(e for e in exposures if e is not None)
    shares: List[Optional[float]] = []
    for exposure in exposures:
        if exposure is None:
            shares.append(None)
        elif total == 0:
            shares.append(0.0)
        else:
            shares.append(exposure / total * 100)
    return shares


class PortfolioAggregator:
    """
    Aggregation over the stored transaction collection.
    FX rates are resolved through the injected FxRateService; without one,
    amounts are summed unconverted.
    """

    def __init__(self, repository: Optional[TransactionRepository] = None,
                 fx_service: Optional[FxRateService] = None):
        self.repository = repository or TransactionRepository()
        self.fx_service = fx_service

    def snapshot(self) -> List[Transaction]:
        return self.repository.load()

    def get_rates(self) -> Optional[FxRates]:
        if self.fx_service is None:
            return None
        try:
            return self.fx_service.get_rates()
        except Exception as e:
            logger.error(f"Error resolving FX rates: {e}")
            return None

    def strategy_symbols(self, transactions: Optional[List[Transaction]] = None) -> List[str]:
        """Symbols with at least two transactions."""
        if transactions is None:
            transactions = self.snapshot()
        return [symbol for symbol, legs in group_by_symbol(transactions).items() if len(legs) >= 2]

    def strategy(self, symbol: str, num_points: Optional[int] = None,
                 transactions: Optional[List[Transaction]] = None,
                 reference_price: Optional[float] = None) -> Optional[StrategyView]:
        """
        Strategy view for a symbol.
        A given reference_price replaces the one derived from the legs and
        centers the simulation window on it.

        Returns:
            StrategyView in the currency of the first leg, or None when the
            symbol has fewer than two transactions
        """
        if transactions is None:
            transactions = self.snapshot()
        symbol = normalize_symbol(symbol)
        legs = [t for t in transactions if t.symbol == symbol]
        if len(legs) < 2:
            return None

        reference = strategy_reference_price(legs) if reference_price is None else reference_price
        if not is_available(reference) or reference <= 0:
            logger.warning(f"No usable reference price for strategy {symbol}")
            curve = PayoffCurve()
        else:
            curve = simulate_around(legs, reference, num_points)

        totals = MetricTotals()
        for t in legs:
            totals.add(compute_risk_metrics(t))

        return StrategyView(
            symbol=symbol,
            currency=str(getattr(legs[0].currency, "value", legs[0].currency)),
            reference_price=reference,
            curve=curve,
            totals=totals,
            transactions=legs,
        )

    def position_metrics(self, transactions: Optional[List[Transaction]] = None,
                         rates: Optional[FxRates] = None) -> List[PositionMetrics]:
        """Static metrics per transaction, with shares computed on EUR exposures."""
        if transactions is None:
            transactions = self.snapshot()
            rates = self.get_rates()

        metrics = [compute_risk_metrics(t) for t in transactions]
        exposures = []
        for t, m in zip(transactions, metrics):
            exposure = position_exposure(m)
            exposures.append(None if exposure is None else convert_to_eur(exposure, t.currency, rates))
        shares = portfolio_shares(exposures)

        return [
            PositionMetrics(transaction=t, metrics=m, portfolio_share=s)
            for t, m, s in zip(transactions, metrics, shares)
        ]

    def symbol_totals(self, transactions: Optional[List[Transaction]] = None) -> Dict[str, MetricTotals]:
        """Summed metrics per symbol, in each symbol's own currency."""
        if transactions is None:
            transactions = self.snapshot()
        result: Dict[str, MetricTotals] = {}
        for symbol, legs in group_by_symbol(transactions).items():
            totals = MetricTotals()
            for t in legs:
                totals.add(compute_risk_metrics(t))
            result[symbol] = totals
        return result

    def summary(self, transactions: Optional[List[Transaction]] = None,
                rates: Optional[FxRates] = None) -> PortfolioSummary:
        """Per-category and portfolio totals in EUR."""
        if transactions is None:
            transactions = self.snapshot()
            rates = self.get_rates()

        categories = {name: MetricTotals() for name in CATEGORIES}
        for t in transactions:
            categories[category_of(t)].add(compute_risk_metrics(t), t.currency, rates)

        total = MetricTotals()
        for totals in categories.values():
            total.merge(totals)

        return PortfolioSummary(
            categories=categories,
            total=total,
            risk_reward_ratio=risk_reward_ratio(total),
            fx_rates=rates,
        )
