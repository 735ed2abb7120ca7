import math

import pytest

from models import AssetType, Action
from services.common import Amount
from services.valuation import (
    CONTRACT_MULTIPLIER, compute_pnl, compute_risk_metrics, reference_price, intrinsic_value
)


def test_stock_buy_with_fees(stock_factory):
    t = stock_factory(price=100.0, quantity=10.0, fees=2.0)
    m = compute_risk_metrics(t)

    assert m.invested_amount == 1020.0
    assert m.risk_exposure == Amount.bounded(-1020.0)
    assert m.break_even == 102.0
    assert m.premium_income == 0.0
    assert m.max_profit.is_unbounded and m.max_profit.direction == 1
    assert m.max_loss == Amount.bounded(-1020.0)
    assert compute_pnl(110.0, t) == 80.0


def test_stock_sell(stock_factory):
    t = stock_factory(action=Action.SELL, price=100.0, quantity=10.0, fees=2.0)
    m = compute_risk_metrics(t)

    assert m.invested_amount == 0.0
    assert m.risk_exposure == Amount.bounded(0.0)
    assert m.break_even == 98.0
    assert m.realized_income == 980.0
    assert m.max_profit == Amount.bounded(980.0)
    assert m.max_loss == Amount.unbounded(-1)
    assert compute_pnl(90.0, t) == 80.0


def test_sold_call(option_factory):
    t = option_factory(action=Action.SELL, strike=50.0, premium=2.0, quantity=1.0, fees=1.0)
    m = compute_risk_metrics(t)

    assert m.premium_income == 199.0
    assert m.risk_exposure.is_unbounded and m.risk_exposure.direction == -1
    assert m.break_even == 52.0
    assert compute_pnl(40.0, t) == 199.0
    assert compute_pnl(50.0, t) == 199.0
    assert compute_pnl(60.0, t) == -801.0


def test_bought_call(option_factory):
    t = option_factory(strike=50.0, premium=2.0, quantity=3.0, fees=1.0)
    m = compute_risk_metrics(t)

    assert m.invested_amount == 2.0 * 3 * CONTRACT_MULTIPLIER + 3.0
    assert m.risk_exposure == Amount.bounded(-603.0)
    assert m.max_profit == Amount.unbounded(1)
    assert m.max_loss == Amount.bounded(-603.0)
    assert compute_pnl(40.0, t) == -603.0


def test_bought_put(option_factory):
    t = option_factory(asset_type=AssetType.PUT_OPTION, strike=50.0, premium=2.0, quantity=1.0)
    m = compute_risk_metrics(t)

    assert m.break_even == 48.0
    assert m.invested_amount == 200.0
    assert m.max_profit == Amount.bounded(4800.0)
    assert compute_pnl(0.0, t) == 4800.0


def test_sold_put(option_factory):
    t = option_factory(asset_type=AssetType.PUT_OPTION, action=Action.SELL,
                       strike=50.0, premium=2.0, quantity=1.0, fees=1.0)
    m = compute_risk_metrics(t)

    assert m.premium_income == 199.0
    assert m.risk_exposure == Amount.bounded(-(5000.0 - 199.0))
    assert m.max_loss == Amount.bounded(-(4800.0 + 1.0))
    assert compute_pnl(0.0, t) == m.max_loss.value


def test_contract_multiplier_applies_to_pnl(option_factory):
    t = option_factory(strike=100.0, premium=0.0, quantity=1.0)
    assert compute_pnl(101.0, t) == 1.0 * CONTRACT_MULTIPLIER


@pytest.mark.parametrize("action", [Action.BUY, Action.SELL])
def test_stock_break_even_has_zero_pnl(stock_factory, action):
    t = stock_factory(action=action, price=87.5, quantity=4.0, fees=0.75)
    assert compute_pnl(compute_risk_metrics(t).break_even, t) == pytest.approx(0.0)


@pytest.mark.parametrize("asset_type", [AssetType.CALL_OPTION, AssetType.PUT_OPTION])
@pytest.mark.parametrize("action", [Action.BUY, Action.SELL])
def test_option_break_even_has_zero_pnl(option_factory, asset_type, action):
    t = option_factory(asset_type=asset_type, action=action, strike=40.0, premium=3.5, quantity=2.0)
    assert compute_pnl(compute_risk_metrics(t).break_even, t) == pytest.approx(0.0)


def test_long_stock_monotonic(stock_factory):
    long_t = stock_factory(fees=1.0)
    short_t = stock_factory(action=Action.SELL, fees=1.0)
    prices = [p * 5.0 for p in range(50)]

    long_pnl = [compute_pnl(p, long_t) for p in prices]
    short_pnl = [compute_pnl(p, short_t) for p in prices]

    assert long_pnl == sorted(long_pnl)
    assert short_pnl == sorted(short_pnl, reverse=True)


def test_missing_field_gives_nan(stock_factory):
    t = stock_factory(price=None)
    assert math.isnan(compute_pnl(100.0, t))


def test_reference_price(stock_factory, option_factory):
    assert reference_price(stock_factory(price=123.0)) == 123.0
    assert reference_price(option_factory(strike=50.0, underlying=55.0)) == 55.0
    assert reference_price(option_factory(strike=50.0, underlying=0.0)) == 50.0
    assert reference_price(option_factory(strike=50.0)) == 50.0


def test_unknown_asset_type_raises(stock_factory):
    t = stock_factory()
    t.asset_type = "Future"
    with pytest.raises(ValueError):
        compute_pnl(100.0, t)
    with pytest.raises(ValueError):
        intrinsic_value("Future", 100.0, 90.0)
