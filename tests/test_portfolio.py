import json
from datetime import date

from models import Action, Currency
from services.fx import FxRates
from services.portfolio import PortfolioService
from services.portfolio_io import export_report


class StaticFxService:
    def get_rates(self):
        return FxRates(rates={"EURUSD": 2.0}, as_of=date(2024, 1, 1))


def test_dashboard_sections(repository, stock_factory, option_factory):
    stock = stock_factory(price=100.0, quantity=10.0, currency=Currency.USD)
    call = option_factory(action=Action.SELL, strike=110.0, premium=1.0, currency=Currency.USD)
    other = stock_factory(symbol="SAP", price=50.0, quantity=2.0)
    repository.save([stock, call, other])

    dashboard = PortfolioService(repository, StaticFxService()).build_dashboard()

    assert set(dashboard) == {'transactions', 'perTransactionMetrics', 'perSymbolMetrics', 'portfolioMetrics'}
    assert [t['id'] for t in dashboard['transactions']] == [stock.id, call.id, other.id]

    per_tx = dashboard['perTransactionMetrics']
    assert per_tx[stock.id]['investedAmount'] == 1000.0
    assert per_tx[call.id]['portfolioShare'] is None
    # 1000 USD / 2.0 = 500 EUR against 100 EUR
    assert round(per_tx[stock.id]['portfolioShare'], 6) == round(500 / 600 * 100, 6)

    per_symbol = dashboard['perSymbolMetrics']
    assert per_symbol['AAPL']['isStrategy'] is True
    assert per_symbol['AAPL']['currency'] == "USD"
    assert per_symbol['SAP']['isStrategy'] is False

    portfolio = dashboard['portfolioMetrics']
    assert portfolio['stocks']['investedAmount'] == 600.0
    assert portfolio['sold_options']['premiumIncome'] == 50.0
    assert portfolio['total']['riskExposure'].is_unbounded


def test_dashboard_report_is_json(repository, option_factory):
    repository.save([option_factory(action=Action.SELL)])
    dashboard = PortfolioService(repository, StaticFxService()).build_dashboard()

    data = json.loads(export_report(dashboard))
    assert data['portfolioMetrics']['total']['riskExposure'] == "-Infinity"


def test_display_frames(repository, stock_factory, option_factory):
    repository.save([stock_factory(), option_factory(action=Action.SELL)])
    dashboard = PortfolioService(repository).build_dashboard()

    positions = PortfolioService.positions_frame(dashboard)
    assert list(positions['Risk']) == ["-1,000.00 EUR", "-∞"]
    assert list(positions['Share %']) == ["100.0%", "∞"]

    categories = PortfolioService.categories_frame(dashboard)
    assert list(categories['Category']) == ["Stocks", "Bought options", "Sold options", "Total"]
    assert categories.iloc[-1]['Risk'] == "-∞"


def test_empty_dashboard(repository):
    dashboard = PortfolioService(repository).build_dashboard()
    assert dashboard['transactions'] == []
    assert dashboard['portfolioMetrics']['riskRewardRatio'] is None
    assert PortfolioService.positions_frame(dashboard).empty
