"""
Transaction service - input validation and lifecycle.
Everything that reaches the valuation model passes through here first, so the
model can assume the stock/option field groups match the asset type.
"""

import logging
import math
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from models import Transaction, AssetType, Action, Currency, OPTION_TYPES, new_transaction_id
from repositories import TransactionRepository
from services.common import normalize_symbol

logger = logging.getLogger(__name__)

STOCK_FIELDS = ('transaction_price',)
OPTION_FIELDS = ('strike_price', 'premium', 'underlying_asset_price', 'expiry_date')

# Broker fees pre-filled in the entry form, per currency
STOCK_FEES = {Currency.EUR: 0.02}
OPTION_FEES = {Currency.EUR: 0.75, Currency.CHF: 3.02, Currency.USD: 2.02}
FRIDAY = 4


class InvalidTransactionError(ValueError):
    """Raised when a transaction does not have a valid shape for its asset type."""


def _check_number(field_name: str, value: Any, positive: bool = False) -> float:
    if value is None or isinstance(value, bool):
        raise InvalidTransactionError(f"{field_name} is required")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidTransactionError(f"{field_name} must be a number, got {value!r}")
    if math.isnan(number) or math.isinf(number):
        raise InvalidTransactionError(f"{field_name} must be finite")
    if positive and number <= 0:
        raise InvalidTransactionError(f"{field_name} must be positive")
    if number < 0:
        raise InvalidTransactionError(f"{field_name} must not be negative")
    return number


def _check_enum(enum_cls, field_name: str, value: Any):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidTransactionError(f"{field_name} must be one of {allowed}, got {value!r}")


def validate_transaction(transaction: Transaction) -> Transaction:
    """
    Check and normalize a transaction in place.

    - enums are coerced from their string values
    - the symbol is stripped and uppercased
    - quantity must be positive, fees and prices non-negative and finite
    - exactly the field group of the asset type is populated; the other is cleared
    - an option without an underlying price takes its strike

    Raises:
        InvalidTransactionError: if any rule is violated
    """
    transaction.asset_type = _check_enum(AssetType, "asset_type", transaction.asset_type)
    transaction.action = _check_enum(Action, "action", transaction.action)
    transaction.currency = _check_enum(Currency, "currency", transaction.currency or Currency.EUR)

    if transaction.symbol is not None and not isinstance(transaction.symbol, str):
        raise InvalidTransactionError(f"symbol must be text, got {transaction.symbol!r}")
    transaction.symbol = normalize_symbol(transaction.symbol)
    if not transaction.symbol:
        raise InvalidTransactionError("symbol is required")
    if transaction.name is not None:
        if not isinstance(transaction.name, str):
            raise InvalidTransactionError(f"name must be text, got {transaction.name!r}")
        transaction.name = transaction.name.strip() or None

    transaction.quantity = _check_number("quantity", transaction.quantity, positive=True)
    transaction.fees = _check_number("fees", 0.0 if transaction.fees is None else transaction.fees)

    if transaction.asset_type == AssetType.STOCK:
        transaction.transaction_price = _check_number("transaction_price", transaction.transaction_price)
        for name in OPTION_FIELDS:
            setattr(transaction, name, None)
    elif transaction.asset_type in OPTION_TYPES:
        transaction.strike_price = _check_number("strike_price", transaction.strike_price)
        transaction.premium = _check_number("premium", transaction.premium)
        if transaction.underlying_asset_price in (None, 0, 0.0):
            transaction.underlying_asset_price = transaction.strike_price
        else:
            transaction.underlying_asset_price = _check_number(
                "underlying_asset_price", transaction.underlying_asset_price
            )
        transaction.transaction_price = None

    return transaction


def default_fees(asset_type, currency) -> float:
    """Form default for the fees of a new transaction; 0 where no fee is known."""
    table = STOCK_FEES if AssetType(asset_type) == AssetType.STOCK else OPTION_FEES
    return table.get(Currency(currency), 0.0)


def third_friday_of_next_month(today: Optional[date] = None) -> date:
    """Form default for an option expiry: the monthly expiry of the next month."""
    today = today or date.today()
    if today.month == 12:
        first = date(today.year + 1, 1, 1)
    else:
        first = date(today.year, today.month + 1, 1)
    first_friday = first + timedelta(days=(FRIDAY - first.weekday()) % 7)
    return first_friday + timedelta(weeks=2)


class TransactionService:
    """Create, update and delete transactions through the repository."""

    def __init__(self, repository: Optional[TransactionRepository] = None):
        self.repository = repository or TransactionRepository()

    def list(self) -> List[Transaction]:
        return self.repository.load()

    def create(self, transaction: Transaction) -> Transaction:
        """
        Validate and store a new transaction under a fresh id.

        Returns:
            The stored Transaction
        """
        transaction.id = new_transaction_id()
        validate_transaction(transaction)
        stored = self.repository.upsert(transaction)
        self._propagate_name(stored)
        logger.info(f"Created transaction {stored.id}: {stored.action.value} {stored.quantity} {stored.symbol}")
        return stored

    def create_from_dict(self, data: Dict[str, Any]) -> Transaction:
        """Build a transaction from form values (snake_case keys) and create it."""
        fields = {k: v for k, v in data.items() if k in Transaction.model_fields and k != 'id'}
        return self.create(Transaction(**fields))

    def update(self, transaction_id: str, transaction: Transaction) -> Transaction:
        """
        Replace every field of an existing transaction; the id is kept.

        Raises:
            KeyError: if no transaction has this id
            InvalidTransactionError: if the new values are invalid
        """
        if self.repository.get_by_id(transaction_id) is None:
            raise KeyError(f"Transaction {transaction_id} not found")
        transaction.id = transaction_id
        validate_transaction(transaction)
        stored = self.repository.upsert(transaction)
        self._propagate_name(stored)
        logger.info(f"Updated transaction {transaction_id}")
        return stored

    def clear_all(self) -> int:
        """
        Remove every stored transaction.

        Returns:
            Number of transactions removed
        """
        count = len(self.repository.load())
        self.repository.save([])
        logger.warning(f"Cleared all {count} transactions")
        return count

    def delete(self, transaction_id: str) -> bool:
        deleted = self.repository.delete(transaction_id)
        if deleted:
            logger.info(f"Deleted transaction {transaction_id}")
        else:
            logger.warning(f"Transaction {transaction_id} not found for deletion")
        return deleted

    def _propagate_name(self, transaction: Transaction) -> int:
        """Give every transaction of the same symbol the saved transaction's name."""
        if not transaction.name:
            return 0
        updated = 0
        for other in self.repository.get_by_symbol(transaction.symbol):
            if other.id != transaction.id and other.name != transaction.name:
                other.name = transaction.name
                self.repository.upsert(other)
                updated += 1
        if updated:
            logger.debug(f"Renamed {updated} other {transaction.symbol} transactions to {transaction.name!r}")
        return updated
