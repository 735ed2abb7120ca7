from models import Action, AssetType, Currency
from services.strategy_analyst import (
    StrategyAnalyst, FALLBACK_MESSAGE, describe_transaction, describe_transactions
)


class FakeClient:
    def __init__(self, answer="This is a covered call.", error=None):
        self.answer = answer
        self.error = error
        self.messages = []

    def invoke(self, message):
        self.messages.append(message)
        if self.error:
            raise self.error
        return self.answer


def test_describe_stock(stock_factory):
    t = stock_factory(price=150.0, quantity=100.0, name="Apple", currency=Currency.USD)
    assert describe_transaction(t) == "a Buy of 100 shares of Apple at a price of 150 USD"


def test_describe_option(option_factory):
    t = option_factory(asset_type=AssetType.PUT_OPTION, action=Action.SELL, strike=140.0,
                       premium=2.5, quantity=1.0)
    assert describe_transaction(t) == (
        "a Sell of 1 Put options on AAPL with a strike price of 140 EUR and a premium of 2.5 EUR"
    )


def test_explain_sends_all_legs(stock_factory, option_factory):
    client = FakeClient()
    legs = [stock_factory(), option_factory(action=Action.SELL)]

    answer = StrategyAnalyst(lambda: client).explain(legs)

    assert answer == "This is a covered call."
    assert describe_transactions(legs) in client.messages[0]
    assert "Do not include financial advice" in client.messages[0]


def test_api_failure_returns_fallback(stock_factory):
    client = FakeClient(error=RuntimeError("rate limited"))
    assert StrategyAnalyst(lambda: client).explain([stock_factory()]) == FALLBACK_MESSAGE


def test_missing_configuration_returns_fallback(stock_factory):
    def factory():
        raise ValueError("API key not found")

    assert StrategyAnalyst(factory).explain([stock_factory()]) == FALLBACK_MESSAGE


def test_empty_answer_returns_fallback(stock_factory):
    assert StrategyAnalyst(lambda: FakeClient(answer="  ")).explain([stock_factory()]) == FALLBACK_MESSAGE
