"""
Database models for Strady.
All SQLModel table definitions are centralized here.
"""

from models.transaction import (
    Transaction, AssetType, Action, Currency, OPTION_TYPES, new_transaction_id
)
from models.fx_rate import FxRate

__all__ = [
    'Transaction',
    'AssetType',
    'OPTION_TYPES',
    'Action',
    'Currency',
    'new_transaction_id',
    'FxRate',
]
