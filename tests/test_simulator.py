import pytest

from models import AssetType, Action
from services.simulator import (
    simulate, simulate_transaction, default_price_range, zoom_range,
    find_breakevens, count_sign_changes, price_grid
)


def test_long_stock_default_range(stock_factory):
    t = stock_factory(price=100.0, quantity=10.0, fees=0.5)
    curve = simulate_transaction(t, num_points=201)

    assert len(curve.prices) == 201
    assert curve.prices[0] == 0.0
    assert curve.prices[-1] == 200.0
    assert curve.prices[1] - curve.prices[0] == pytest.approx(1.0)
    assert len(curve.breakevens) == 1
    assert curve.breakevens[0] == pytest.approx(100.5)
    assert curve.max_loss_price == 0.0
    assert curve.max_profit_price == 200.0


def test_breakeven_on_exact_sample(stock_factory):
    t = stock_factory(price=100.0, quantity=10.0, fees=2.0)
    curve = simulate([t], 0.0, 200.0, 201)

    assert curve.breakevens == [pytest.approx(102.0)]


def test_breakeven_count_matches_sign_changes(option_factory):
    # Long straddle: two crossings
    legs = [
        option_factory(asset_type=AssetType.CALL_OPTION, strike=100.0, premium=5.0),
        option_factory(asset_type=AssetType.PUT_OPTION, strike=100.0, premium=5.0),
    ]
    curve = simulate(legs, 0.0, 200.0, 201)

    assert len(curve.breakevens) == count_sign_changes(curve.pnl) == 2
    assert curve.breakevens[0] == pytest.approx(90.0)
    assert curve.breakevens[1] == pytest.approx(110.0)
    assert curve.max_loss == pytest.approx(-1000.0)


def test_sold_call_curve(option_factory):
    t = option_factory(action=Action.SELL, strike=50.0, premium=2.0, quantity=1.0, fees=1.0)
    curve = simulate([t], 0.0, 100.0, 101)

    assert curve.max_profit == pytest.approx(199.0)
    assert curve.pnl[60] == pytest.approx(-801.0)
    assert len(curve.breakevens) == 1
    assert curve.breakevens[0] == pytest.approx(51.99, abs=0.01)


@pytest.mark.parametrize("price_min,price_max,num_points", [
    (100.0, 100.0, 201),
    (200.0, 100.0, 201),
    (0.0, float("nan"), 201),
    (0.0, float("inf"), 201),
    (0.0, 100.0, 1),
])
def test_degenerate_input_gives_empty_curve(stock_factory, price_min, price_max, num_points):
    curve = simulate([stock_factory()], price_min, price_max, num_points)
    assert curve.is_empty
    assert curve.max_profit is None
    assert curve.breakevens == []


def test_no_transactions_gives_empty_curve():
    assert simulate([], 0.0, 100.0, 11).is_empty


def test_non_positive_reference_has_no_window(stock_factory):
    assert default_price_range(0.0) is None
    assert default_price_range(float("nan")) is None
    assert simulate_transaction(stock_factory(price=0.0)).is_empty


def test_default_price_range():
    assert default_price_range(75.0) == (0.0, 150.0)


def test_zoom_keeps_center_and_clamps_at_zero():
    assert zoom_range(0.0, 200.0, 100.0, 0.5) == (50.0, 150.0)
    new_min, new_max = zoom_range(0.0, 200.0, 100.0, 2.0)
    assert new_min == 0.0
    assert new_max == 300.0


def test_unavailable_samples_break_the_curve():
    prices = [0.0, 1.0, 2.0, 3.0]
    pnl = [-1.0, float("nan"), 1.0, 2.0]
    assert find_breakevens(prices, pnl) == []


def test_zero_run_between_signs_is_one_crossing():
    prices = [0.0, 1.0, 2.0, 3.0, 4.0]
    pnl = [-2.0, 0.0, 0.0, 2.0, 3.0]
    assert find_breakevens(prices, pnl) == [1.0]


def test_touching_zero_is_not_a_crossing():
    prices = [0.0, 1.0, 2.0]
    pnl = [-1.0, 0.0, -1.0]
    assert find_breakevens(prices, pnl) == []
    assert count_sign_changes(pnl) == 0


def test_price_grid_is_inclusive():
    grid = price_grid(10.0, 20.0, 11)
    assert grid[0] == 10.0
    assert grid[-1] == 20.0
    assert len(grid) == 11
