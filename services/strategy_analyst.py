"""
Strategy analyst - asks an LLM to name and explain a multi-leg strategy.
The model only receives a plain-language list of the legs; failures never
reach the caller, a fixed fallback message is returned instead.
"""

import logging
from typing import Callable, List, Optional

from llm_engine import create_default_client
from models import Transaction, AssetType
from prompts import get_strategy_request

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "Sorry, the strategy analysis is currently unavailable. "
    "Please check the AI model configuration and try again later."
)


def _fmt(value) -> str:
    return f"{value:g}" if isinstance(value, (int, float)) else str(value)


def describe_transaction(transaction: Transaction) -> str:
    """One leg as a sentence fragment, e.g. "a Buy of 10 shares of Apple at a price of 100 USD"."""
    action = getattr(transaction.action, "value", transaction.action)
    currency = getattr(transaction.currency, "value", transaction.currency)
    name = transaction.display_name
    if transaction.asset_type == AssetType.STOCK:
        return (
            f"a {action} of {_fmt(transaction.quantity)} shares of {name} "
            f"at a price of {_fmt(transaction.transaction_price)} {currency}"
        )
    kind = "Call" if transaction.asset_type == AssetType.CALL_OPTION else "Put"
    return (
        f"a {action} of {_fmt(transaction.quantity)} {kind} options on {name} "
        f"with a strike price of {_fmt(transaction.strike_price)} {currency} "
        f"and a premium of {_fmt(transaction.premium)} {currency}"
    )


def describe_transactions(transactions: List[Transaction]) -> str:
    return "\n".join(f"- {describe_transaction(t)}" for t in transactions)


class StrategyAnalyst:
    """
    Explains strategies through an LLM client.

    Args:
        client_factory: Callable returning an object with invoke(message) -> str;
            defaults to llm_engine.create_default_client
    """

    def __init__(self, client_factory: Optional[Callable] = None):
        self.client_factory = client_factory or create_default_client
        self._client = None

    def _get_client(self):
        if self._client is None:
            self._client = self.client_factory()
        return self._client

    def explain(self, transactions: List[Transaction]) -> str:
        """
        Name the strategy formed by the transactions and explain its risk profile.

        Returns:
            Model answer, or FALLBACK_MESSAGE on missing configuration or API failure
        """
        if not transactions:
            return FALLBACK_MESSAGE
        request = get_strategy_request(describe_transactions(transactions))
        try:
            answer = self._get_client().invoke(request)
        except Exception as e:
            logger.error(f"Error analyzing strategy for {transactions[0].symbol}: {e}")
            return FALLBACK_MESSAGE
        if not answer or not str(answer).strip():
            logger.warning("Empty strategy analysis returned by the model")
            return FALLBACK_MESSAGE
        return str(answer).strip()
