"""
FxRate model - daily cached EUR-base exchange rates.
"""

from typing import Optional
from datetime import date, datetime, timezone
from sqlmodel import SQLModel, Field


class FxRate(SQLModel, table=True):
    """One cached rate per currency pair and calendar day."""
    id: Optional[int] = Field(default=None, primary_key=True)
    pair: str = Field(index=True)  # "EURUSD", "EURCHF"
    rate_date: date = Field(index=True)
    rate: float  # Foreign units per 1 EUR
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
