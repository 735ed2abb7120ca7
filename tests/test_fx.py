from datetime import date

import pytest

from models import Currency
from services.aggregator import PortfolioAggregator
from services.common import Amount
from services.fx import FxRateService, FxRates, convert_to_eur

TODAY = date(2024, 5, 10)


class CountingFetcher:
    def __init__(self, rates=None, fail=False):
        self.rates = rates or {"EURUSD": 1.08, "EURCHF": 0.97}
        self.fail = fail
        self.calls = []

    def __call__(self, pair):
        self.calls.append(pair)
        if self.fail:
            raise ConnectionError("network down")
        return self.rates[pair]


def test_rates_are_cached_per_day(fx_repository):
    fetcher = CountingFetcher()
    service = FxRateService(fx_repository, fetcher)

    first = service.get_rates(TODAY)
    second = service.get_rates(TODAY)

    assert first.rates == {"EURUSD": 1.08, "EURCHF": 0.97}
    assert second.rates == first.rates
    assert fetcher.calls == ["EURUSD", "EURCHF"]


def test_failure_falls_back_to_latest_cached_rate(fx_repository):
    fx_repository.save("EURUSD", date(2024, 5, 1), 1.07)
    service = FxRateService(fx_repository, CountingFetcher(fail=True))

    rates = service.get_rates(TODAY)

    assert rates.rates == {"EURUSD": 1.07}
    assert rates.stale_pairs == ("EURUSD",)
    assert rates.rate_for("CHF") is None


def test_no_rates_at_all(fx_repository):
    service = FxRateService(fx_repository, CountingFetcher(fail=True))
    assert service.get_rates(TODAY) is None


def test_refresh_overwrites_today(fx_repository):
    fx_repository.save("EURUSD", TODAY, 1.0)
    service = FxRateService(fx_repository, CountingFetcher())

    assert service.refresh(TODAY) == 2
    assert fx_repository.get_by_date("EURUSD", TODAY).rate == 1.08


def test_to_eur_divides_by_rate():
    rates = FxRates(rates={"EURUSD": 1.25}, as_of=TODAY)

    assert rates.to_eur(125.0, Currency.USD) == pytest.approx(100.0)
    assert rates.to_eur(125.0, "EUR") == 125.0
    assert rates.to_eur(125.0, "CHF") == 125.0
    assert rates.to_eur(Amount.unbounded(-1), "USD") == Amount.unbounded(-1)


def test_convert_without_rates():
    assert convert_to_eur(50.0, "USD", None) == 50.0


class FailingSaveRepository:
    """Empty cache whose writes always fail."""

    def __init__(self):
        self.saves = 0

    def get_by_date(self, pair, rate_date):
        return None

    def get_latest(self, pair):
        return None

    def save(self, pair, rate_date, rate):
        self.saves += 1
        raise RuntimeError("database is locked")


def test_fetched_rate_is_cached_with_timestamp(fx_repository):
    service = FxRateService(fx_repository, CountingFetcher())
    service.get_rates(TODAY)

    cached = fx_repository.get_by_date("EURUSD", TODAY)
    assert cached.rate == 1.08
    assert cached.fetched_at is not None


def test_cache_write_failure_keeps_fetched_rate():
    repository = FailingSaveRepository()
    service = FxRateService(repository, CountingFetcher())

    rates = service.get_rates(TODAY)

    assert rates.rates == {"EURUSD": 1.08, "EURCHF": 0.97}
    assert rates.stale_pairs == ()
    assert repository.saves == 2
    assert service.refresh(TODAY) == 0


def test_fetched_rate_converts_portfolio_summary(repository, fx_repository, stock_factory):
    repository.save([stock_factory(price=100.0, quantity=10.0, currency=Currency.USD)])
    service = FxRateService(fx_repository, CountingFetcher({"EURUSD": 1.25, "EURCHF": 0.97}))

    summary = PortfolioAggregator(repository, service).summary()

    assert summary.fx_rates.rates["EURUSD"] == 1.25
    assert summary.total.invested_amount == pytest.approx(800.0)
    assert fx_repository.get_latest("EURUSD").rate == 1.25
