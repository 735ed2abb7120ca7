"""
Repositories package for Strady.
Provides data access layer for all database operations.
"""

from repositories.transaction_repository import TransactionRepository
from repositories.fx_rate_repository import FxRateRepository

__all__ = [
    'TransactionRepository',
    'FxRateRepository',
]
