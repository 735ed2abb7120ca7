"""
Transaction Repository - data access layer for Transaction model.
Owns the transaction collection; the engine is injected so callers and tests
can point it at any database.
"""

import logging
from typing import Optional, List, Iterable
from sqlmodel import Session, select

from db_engine import get_engine
from models import Transaction

logger = logging.getLogger(__name__)


def _detached_copy(transaction: Transaction) -> Transaction:
    """Copy a transaction so the caller's instance never gets bound to a session."""
    return Transaction(**transaction.model_dump())


class TransactionRepository:
    """Repository for Transaction CRUD operations and whole-collection persistence."""

    def __init__(self, engine=None):
        self._engine = engine

    @property
    def engine(self):
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    def _run(self, work, session: Optional[Session] = None):
        """Run work(session) in the given session, or in a fresh one."""
        if session is not None:
            return work(session)
        with Session(self.engine) as session:
            return work(session)

    def load(self, session: Optional[Session] = None) -> List[Transaction]:
        """
        Load the whole transaction collection in its stored order.

        Every call returns fresh instances, so callers always work on a snapshot.
        """
        def _load(sess: Session) -> List[Transaction]:
            statement = select(Transaction).order_by(Transaction.sort_order)
            return [_detached_copy(t) for t in sess.exec(statement).all()]

        return self._run(_load, session)

    def save(self, transactions: Iterable[Transaction], session: Optional[Session] = None) -> None:
        """
        Replace the stored collection with the given transactions.
        Last write wins; there is no partial update.
        """
        def _save(sess: Session) -> None:
            try:
                for stored in sess.exec(select(Transaction)).all():
                    sess.delete(stored)
                sess.flush()
                count = 0
                for index, transaction in enumerate(transactions):
                    copy = _detached_copy(transaction)
                    copy.sort_order = index
                    sess.add(copy)
                    count += 1
                sess.commit()
                logger.debug(f"Saved {count} transactions")
            except Exception as e:
                sess.rollback()
                raise e

        self._run(_save, session)

    def get_by_id(self, transaction_id: str, session: Optional[Session] = None) -> Optional[Transaction]:
        """
        Retrieve a transaction by its ID.

        Args:
            transaction_id: Transaction ID to look up
            session: Optional existing session for transaction reuse

        Returns:
            Transaction object or None if not found
        """
        def _get_by_id(sess: Session) -> Optional[Transaction]:
            transaction = sess.get(Transaction, transaction_id)
            return _detached_copy(transaction) if transaction else None

        return self._run(_get_by_id, session)

    def get_by_symbol(self, symbol: str, session: Optional[Session] = None) -> List[Transaction]:
        """Retrieve all transactions for a symbol, in stored order."""
        def _get_by_symbol(sess: Session) -> List[Transaction]:
            statement = (
                select(Transaction)
                .where(Transaction.symbol == (symbol or "").strip().upper())
                .order_by(Transaction.sort_order)
            )
            return [_detached_copy(t) for t in sess.exec(statement).all()]

        return self._run(_get_by_symbol, session)

    def upsert(self, transaction: Transaction, session: Optional[Session] = None) -> Transaction:
        """
        Insert a new transaction at the end of the list, or replace the stored
        one with the same id wholesale (its position is kept).

        Returns:
            The stored Transaction
        """
        def _upsert(sess: Session) -> Transaction:
            copy = _detached_copy(transaction)
            existing = sess.get(Transaction, copy.id)
            if existing:
                copy.sort_order = existing.sort_order
                sess.delete(existing)
                sess.flush()
            else:
                last = sess.exec(
                    select(Transaction).order_by(Transaction.sort_order.desc()).limit(1)
                ).first()
                copy.sort_order = last.sort_order + 1 if last else 0
            sess.add(copy)
            sess.commit()
            sess.refresh(copy)
            return _detached_copy(copy)

        return self._run(_upsert, session)

    def delete(self, transaction_id: str, session: Optional[Session] = None) -> bool:
        """
        Delete a transaction by its ID.

        Returns:
            True if a transaction was removed, False otherwise
        """
        def _delete(sess: Session) -> bool:
            try:
                transaction = sess.get(Transaction, transaction_id)
                if transaction:
                    sess.delete(transaction)
                    sess.commit()
                    return True
                return False
            except Exception as e:
                sess.rollback()
                raise e

        return self._run(_delete, session)
