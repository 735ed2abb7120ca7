"""
Services package for Strady.
Provides core business logic separated from presentation and data layers.
"""

from services.common import (
    Amount,
    normalize_symbol,
    to_number,
    is_available,
    sum_amounts,
    format_number,
)
from services.valuation import (
    CONTRACT_MULTIPLIER,
    RiskMetrics,
    compute_pnl,
    compute_risk_metrics,
    reference_price,
)
from services.simulator import (
    PayoffCurve,
    simulate,
    simulate_transaction,
    default_price_range,
    zoom_range,
    find_breakevens,
)
from services.fx import FxRates, FxRateService
from services.aggregator import (
    PortfolioAggregator,
    StrategyView,
    PortfolioSummary,
    strategy_reference_price,
)
from services.transactions import TransactionService, InvalidTransactionError
from services.portfolio_io import (
    TransactionImportError,
    export_transactions,
    import_transactions,
    export_report,
)
from services.market_data import MarketDataService
from services.portfolio import PortfolioService
from services.strategy_analyst import StrategyAnalyst

__all__ = [
    # Common utilities
    'Amount',
    'normalize_symbol',
    'to_number',
    'is_available',
    'sum_amounts',
    'format_number',
    # Valuation and simulation
    'CONTRACT_MULTIPLIER',
    'RiskMetrics',
    'compute_pnl',
    'compute_risk_metrics',
    'reference_price',
    'PayoffCurve',
    'simulate',
    'simulate_transaction',
    'default_price_range',
    'zoom_range',
    'find_breakevens',
    # Aggregation
    'FxRates',
    'FxRateService',
    'PortfolioAggregator',
    'StrategyView',
    'PortfolioSummary',
    'strategy_reference_price',
    # Services
    'TransactionService',
    'InvalidTransactionError',
    'TransactionImportError',
    'export_transactions',
    'import_transactions',
    'export_report',
    'MarketDataService',
    'PortfolioService',
    'StrategyAnalyst',
]
