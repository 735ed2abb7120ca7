"""
Portfolio service - assembles the dashboard the UI renders.
One snapshot of the transaction list feeds every section, so the per-position,
per-symbol and portfolio figures always agree with each other.
"""

import logging
from typing import Any, Dict, Optional

import pandas as pd

from repositories import TransactionRepository
from services.aggregator import PortfolioAggregator
from services.common import Amount, format_number
from services.fx import FxRateService
from services.portfolio_io import transaction_to_dict

logger = logging.getLogger(__name__)


class PortfolioService:
    """
    Service building the dashboard report.
    Figures are plain values; unbounded amounts stay Amount instances so the
    renderer can show them distinctly.
    """

    def __init__(self, repository: Optional[TransactionRepository] = None,
                 fx_service: Optional[FxRateService] = None):
        self.repository = repository or TransactionRepository()
        self.aggregator = PortfolioAggregator(self.repository, fx_service)

    def build_dashboard(self) -> Dict[str, Any]:
        """
        Build the full dashboard report.

        Returns:
            Dictionary with 'transactions', 'perTransactionMetrics',
            'perSymbolMetrics' and 'portfolioMetrics'
        """
        transactions = self.aggregator.snapshot()
        rates = self.aggregator.get_rates()

        positions = self.aggregator.position_metrics(transactions, rates)
        symbol_totals = self.aggregator.symbol_totals(transactions)
        summary = self.aggregator.summary(transactions, rates)

        per_symbol = {}
        for symbol, totals in symbol_totals.items():
            legs = [t for t in transactions if t.symbol == symbol]
            data = totals.to_dict()
            data['currency'] = getattr(legs[0].currency, "value", legs[0].currency)
            data['isStrategy'] = len(legs) >= 2
            per_symbol[symbol] = data

        logger.debug(f"Built dashboard for {len(transactions)} transactions")
        return {
            'transactions': [transaction_to_dict(t) for t in transactions],
            'perTransactionMetrics': {p.transaction.id: p.to_dict() for p in positions},
            'perSymbolMetrics': per_symbol,
            'portfolioMetrics': summary.to_dict(),
        }

    @staticmethod
    def positions_frame(dashboard: Dict[str, Any]) -> pd.DataFrame:
        """
        Tabular view of the transactions and their metrics for display.
        Amounts are pre-formatted so unbounded values show as infinity glyphs.
        """
        rows = []
        metrics = dashboard['perTransactionMetrics']
        for record in dashboard['transactions']:
            m = metrics.get(record['id'], {})
            currency = record['currency']
            share = m.get('portfolioShare')
            rows.append({
                'Symbol': record['symbol'],
                'Name': record.get('name') or record['symbol'],
                'Type': record['assetType'],
                'Action': record['action'],
                'Quantity': record['quantity'],
                'Invested': format_number(m.get('investedAmount'), currency),
                'Premium Income': format_number(m.get('premiumIncome'), currency),
                'Realized Income': format_number(m.get('realizedIncome'), currency),
                'Risk': _format_amount(m.get('riskExposure'), currency),
                'Max Profit': _format_amount(m.get('maxProfit'), currency),
                'Max Loss': _format_amount(m.get('maxLoss'), currency),
                'Break-even': format_number(m.get('breakEven')),
                'Share %': "∞" if share is None else f"{share:.1f}%",
                'id': record['id'],
            })
        return pd.DataFrame(rows)

    @staticmethod
    def categories_frame(dashboard: Dict[str, Any]) -> pd.DataFrame:
        """Per-category EUR totals as a display table."""
        portfolio = dashboard['portfolioMetrics']
        currency = portfolio['currency']
        rows = []
        for label, key in (("Stocks", "stocks"), ("Bought options", "bought_options"),
                           ("Sold options", "sold_options"), ("Total", "total")):
            totals = portfolio[key]
            rows.append({
                'Category': label,
                'Invested': format_number(totals['investedAmount'], currency),
                'Premium Income': format_number(totals['premiumIncome'], currency),
                'Realized Income': format_number(totals['realizedIncome'], currency),
                'Risk': _format_amount(totals['riskExposure'], currency),
            })
        return pd.DataFrame(rows)


def _format_amount(amount: Optional[Amount], currency: Optional[str] = None) -> str:
    if amount is None:
        return format_number(None)
    return amount.format(currency)
