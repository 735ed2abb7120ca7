"""
FxRate Repository - data access layer for the daily FX rate cache.
"""

from typing import Optional, List
from datetime import date
from sqlmodel import Session, select

from db_engine import get_engine
from models import FxRate


class FxRateRepository:
    """Repository for FxRate cache entries."""

    def __init__(self, engine=None):
        self._engine = engine

    @property
    def engine(self):
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    def save(self, pair: str, rate_date: date, rate: float) -> FxRate:
        """
        Save or update the rate of a pair for a day.
        Uses upsert logic: if exists for pair + date, update; otherwise insert.
        """
        with Session(self.engine) as session:
            statement = select(FxRate).where(
                FxRate.pair == pair,
                FxRate.rate_date == rate_date
            )
            existing = session.exec(statement).first()

            if existing:
                existing.rate = rate
                session.add(existing)
                session.commit()
                session.refresh(existing)
                return existing

            entry = FxRate(pair=pair, rate_date=rate_date, rate=rate)
            session.add(entry)
            session.commit()
            session.refresh(entry)
            return entry

    def get_by_date(self, pair: str, rate_date: date) -> Optional[FxRate]:
        """Get the cached rate of a pair for a specific day."""
        with Session(self.engine) as session:
            statement = select(FxRate).where(
                FxRate.pair == pair,
                FxRate.rate_date == rate_date
            )
            return session.exec(statement).first()

    def get_latest(self, pair: str) -> Optional[FxRate]:
        """Get the most recent cached rate of a pair, whatever its day."""
        with Session(self.engine) as session:
            statement = select(FxRate).where(
                FxRate.pair == pair
            ).order_by(FxRate.rate_date.desc()).limit(1)
            return session.exec(statement).first()

    def get_history(self, pair: str, days: int = 30) -> List[FxRate]:
        """Get the cached history of a pair, newest first."""
        with Session(self.engine) as session:
            statement = select(FxRate).where(
                FxRate.pair == pair
            ).order_by(FxRate.rate_date.desc()).limit(days)
            return list(session.exec(statement).all())
