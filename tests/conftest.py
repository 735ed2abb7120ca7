import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from db_engine import init_db
from models import Transaction, AssetType, Action, Currency
from repositories import TransactionRepository, FxRateRepository


@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return TransactionRepository(engine)


@pytest.fixture
def fx_repository(engine):
    return FxRateRepository(engine)


def make_stock(action=Action.BUY, price=100.0, quantity=10.0, fees=0.0,
               symbol="AAPL", currency=Currency.EUR, **kwargs):
    return Transaction(
        asset_type=AssetType.STOCK,
        action=action,
        symbol=symbol,
        quantity=quantity,
        currency=currency,
        fees=fees,
        transaction_price=price,
        **kwargs
    )


def make_option(asset_type=AssetType.CALL_OPTION, action=Action.BUY, strike=50.0, premium=2.0,
                quantity=1.0, fees=0.0, underlying=None, symbol="AAPL", currency=Currency.EUR, **kwargs):
    return Transaction(
        asset_type=asset_type,
        action=action,
        symbol=symbol,
        quantity=quantity,
        currency=currency,
        fees=fees,
        strike_price=strike,
        premium=premium,
        underlying_asset_price=underlying,
        **kwargs
    )


@pytest.fixture
def stock_factory():
    return make_stock


@pytest.fixture
def option_factory():
    return make_option
