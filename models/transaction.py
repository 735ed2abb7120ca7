"""
Transaction model - represents a stock or option buy/sell transaction.
"""

import uuid
from enum import Enum
from typing import Optional
from datetime import date
from sqlmodel import SQLModel, Field


class AssetType(str, Enum):
    """Instrument traded by a transaction."""
    STOCK = "Stock"
    CALL_OPTION = "Call Option"
    PUT_OPTION = "Put Option"


OPTION_TYPES = (AssetType.CALL_OPTION, AssetType.PUT_OPTION)


class Action(str, Enum):
    BUY = "Buy"
    SELL = "Sell"


class Currency(str, Enum):
    EUR = "EUR"
    USD = "USD"
    CHF = "CHF"


def new_transaction_id() -> str:
    """Generate a fresh transaction identifier."""
    return uuid.uuid4().hex


class Transaction(SQLModel, table=True):
    """Represents a buy/sell transaction for a stock or an option contract."""
    id: str = Field(default_factory=new_transaction_id, primary_key=True)
    asset_type: AssetType
    action: Action
    symbol: str = Field(index=True)  # Always uppercased, e.g. "AAPL"
    name: Optional[str] = Field(default=None)  # Display name, e.g. "Apple Inc."
    quantity: float  # Shares, or option contracts (x100 multiplier)
    currency: Currency = Field(default=Currency.EUR)
    fees: float = Field(default=0.0)  # Per-unit transaction cost
    transaction_date: Optional[date] = Field(default=None)

    # Stock fields
    transaction_price: Optional[float] = Field(default=None)

    # Option fields
    strike_price: Optional[float] = Field(default=None)
    premium: Optional[float] = Field(default=None)
    underlying_asset_price: Optional[float] = Field(default=None)  # Falls back to strike
    expiry_date: Optional[date] = Field(default=None)

    # Keeps list order stable across whole-collection saves
    sort_order: int = Field(default=0, index=True)

    @property
    def display_name(self) -> str:
        """Name if one was recorded, otherwise the symbol."""
        if self.name and self.name.strip():
            return self.name
        return self.symbol
