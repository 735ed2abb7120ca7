"""
Portfolio import/export.
Transactions are exchanged as a JSON array of records with camelCase keys.
JSON has no literal for infinity or NaN, so non-finite numbers and unbounded
amounts are written as the string tokens "Infinity", "-Infinity" and "NaN".
"""

import json
import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models import Transaction
from repositories import TransactionRepository
from services.common import Amount, encode_number, decode_number
from services.transactions import InvalidTransactionError, validate_transaction

logger = logging.getLogger(__name__)

# Model field -> exchange key
FIELD_ALIASES = {
    'id': 'id',
    'asset_type': 'assetType',
    'action': 'action',
    'symbol': 'symbol',
    'name': 'name',
    'quantity': 'quantity',
    'currency': 'currency',
    'fees': 'fees',
    'transaction_date': 'transactionDate',
    'transaction_price': 'transactionPrice',
    'strike_price': 'strikePrice',
    'premium': 'premium',
    'underlying_asset_price': 'underlyingAssetPrice',
    'expiry_date': 'expiryDate',
}
NUMBER_FIELDS = ('quantity', 'fees', 'transaction_price', 'strike_price', 'premium', 'underlying_asset_price')
DATE_FIELDS = ('transaction_date', 'expiry_date')
REQUIRED_KEYS = ('assetType', 'action', 'symbol', 'quantity')


class TransactionImportError(ValueError):
    """Raised when an import payload cannot be turned into transactions."""


def transaction_to_dict(transaction: Transaction) -> Dict[str, Any]:
    """Exchange record of a transaction."""
    record: Dict[str, Any] = {}
    for field_name, key in FIELD_ALIASES.items():
        value = getattr(transaction, field_name)
        if field_name in NUMBER_FIELDS:
            value = encode_number(value)
        elif field_name in DATE_FIELDS:
            value = value.isoformat() if value else None
        elif hasattr(value, 'value'):
            value = value.value
        record[key] = value
    return record


def transaction_from_dict(record: Dict[str, Any], index: int = 0) -> Transaction:
    """
    Parse and validate one exchange record.

    Raises:
        TransactionImportError: if the record is malformed or invalid
    """
    if not isinstance(record, dict):
        raise TransactionImportError(f"Record {index} is not an object")
    missing = [key for key in REQUIRED_KEYS if record.get(key) in (None, "")]
    if missing:
        raise TransactionImportError(f"Record {index} is missing {', '.join(missing)}")

    fields: Dict[str, Any] = {}
    try:
        for field_name, key in FIELD_ALIASES.items():
            if key not in record:
                continue
            value = record[key]
            if field_name in NUMBER_FIELDS:
                value = decode_number(value)
            elif field_name in DATE_FIELDS:
                value = date.fromisoformat(value) if value else None
            fields[field_name] = value
    except (TypeError, ValueError) as e:
        raise TransactionImportError(f"Record {index} has an invalid value: {e}")

    if not fields.get('id'):
        fields.pop('id', None)

    try:
        return validate_transaction(Transaction(**fields))
    except InvalidTransactionError as e:
        raise TransactionImportError(f"Record {index} is invalid: {e}")


def export_transactions(transactions: Iterable[Transaction], indent: Optional[int] = 2) -> str:
    """Serialize transactions to the JSON exchange format."""
    records = [transaction_to_dict(t) for t in transactions]
    return json.dumps(records, indent=indent, allow_nan=False, ensure_ascii=False)


def parse_transactions(payload: str) -> List[Transaction]:
    """
    Parse a JSON exchange payload.

    Raises:
        TransactionImportError: if the payload is not a JSON array of valid records
    """
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise TransactionImportError(f"Payload is not valid JSON: {e}")
    if not isinstance(data, list):
        raise TransactionImportError("Payload must be a JSON array of transactions")
    return [transaction_from_dict(record, i) for i, record in enumerate(data)]


def merge_imported(existing: List[Transaction], imported: List[Transaction]) -> Tuple[List[Transaction], int, int]:
    """
    Merge imported transactions into an existing list by id.
    A known id replaces the existing entry in place; an unknown id is appended.

    Returns:
        (merged list, replaced count, added count)
    """
    merged = list(existing)
    positions = {t.id: i for i, t in enumerate(merged)}
    replaced = added = 0
    for t in imported:
        if t.id in positions:
            merged[positions[t.id]] = t
            replaced += 1
        else:
            positions[t.id] = len(merged)
            merged.append(t)
            added += 1
    return merged, replaced, added


def import_transactions(payload: str, repository: Optional[TransactionRepository] = None) -> Dict[str, int]:
    """
    Import a JSON payload into the repository, merging by id.
    Nothing is written when any record is invalid.

    Returns:
        Dict with 'replaced' and 'added' counts
    """
    repository = repository or TransactionRepository()
    imported = parse_transactions(payload)
    merged, replaced, added = merge_imported(repository.load(), imported)
    repository.save(merged)
    logger.info(f"Imported {len(imported)} transactions ({replaced} replaced, {added} added)")
    return {'replaced': replaced, 'added': added}


def to_json_value(value: Any) -> Any:
    """Recursively convert report values into JSON-safe values."""
    if isinstance(value, Amount):
        return value.to_json()
    if isinstance(value, Transaction):
        return transaction_to_dict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return encode_number(float(value)) if isinstance(value, float) else value
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, 'to_dict'):
        return to_json_value(value.to_dict())
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def export_report(report: Dict[str, Any], indent: Optional[int] = 2) -> str:
    """Serialize a dashboard report, with tokens for unbounded and missing values."""
    return json.dumps(to_json_value(report), indent=indent, allow_nan=False, ensure_ascii=False)
