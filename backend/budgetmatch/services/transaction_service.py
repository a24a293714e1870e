"""Service for user-entered and imported transactions."""

from typing import List, Optional, Dict, Any
from datetime import datetime
from sqlalchemy.orm import Session
import logging
import uuid

from budgetmatch.dates import to_naive_utc
from budgetmatch.exceptions import TransactionNotFoundError
from budgetmatch.models.transaction import Transaction, TransactionStatus, TransactionType
from budgetmatch.schemas.matching import IncomingBankTransaction
from budgetmatch.services.recurring_service import month_bounds

logger = logging.getLogger(__name__)


def list_transactions(
    db: Session,
    user_id: str,
    year: Optional[int] = None,
    month: Optional[int] = None,
    status: Optional[TransactionStatus] = None,
    is_manual: Optional[bool] = None,
    txn_type: Optional[TransactionType] = None,
) -> List[Transaction]:
    """List a user's transactions, newest first."""
    query = db.query(Transaction).filter(Transaction.user_id == user_id)

    if year is not None and month is not None:
        start, end = month_bounds(year, month)
        query = query.filter(Transaction.date >= start, Transaction.date < end)
    if status is not None:
        query = query.filter(Transaction.status == status)
    if is_manual is not None:
        query = query.filter(Transaction.is_manual == is_manual)
    if txn_type is not None:
        query = query.filter(Transaction.type == txn_type)

    return query.order_by(Transaction.date.desc(), Transaction.id).all()


def get_transaction(db: Session, user_id: str, transaction_id: str) -> Transaction:
    transaction = db.query(Transaction).filter(
        Transaction.user_id == user_id,
        Transaction.id == transaction_id
    ).first()
    if not transaction:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
    return transaction


def create_manual_transaction(db: Session, user_id: str, data: Dict[str, Any]) -> Transaction:
    """Create a user-entered transaction waiting to be settled by the bank feed."""
    transaction = Transaction(
        id=str(uuid.uuid4()),
        user_id=user_id,
        description=data["description"],
        amount=data["amount"],
        category=data.get("category") or "",
        date=to_naive_utc(data["date"]),
        type=data["type"],
        status=TransactionStatus.pending,
        is_manual=True,
        is_auto_imported=False,
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    return transaction


def create_imported_transaction(
    db: Session,
    user_id: str,
    bank_tx: IncomingBankTransaction,
    bank_transaction_id: str,
    txn_date: datetime,
) -> Transaction:
    """
    Store a bank transaction that settled nothing.

    Without an explicit type, the feed's sign convention applies:
    positive amounts are money leaving the account.
    """
    txn_type = bank_tx.type
    if txn_type is None:
        txn_type = TransactionType.expense if bank_tx.amount >= 0 else TransactionType.income

    transaction = Transaction(
        id=str(uuid.uuid4()),
        user_id=user_id,
        description=bank_tx.name,
        amount=abs(bank_tx.amount),
        category=bank_tx.category or "",
        date=to_naive_utc(txn_date),
        type=txn_type,
        status=None,
        is_manual=False,
        is_auto_imported=True,
        bank_transaction_id=bank_transaction_id,
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    return transaction


def update_transaction(
    db: Session,
    user_id: str,
    transaction_id: str,
    update_data: Dict[str, Any]
) -> Transaction:
    """Edit descriptive fields; status changes go through the matching service."""
    transaction = get_transaction(db, user_id, transaction_id)
    for field, value in update_data.items():
        # Every editable column is required
        if value is None:
            continue
        if field == "date":
            value = to_naive_utc(value)
        setattr(transaction, field, value)
    db.commit()
    db.refresh(transaction)
    return transaction


def delete_transaction(db: Session, user_id: str, transaction_id: str) -> None:
    transaction = get_transaction(db, user_id, transaction_id)
    db.delete(transaction)
    db.commit()
    logger.info("transaction deleted user_id=%s transaction_id=%s", user_id, transaction_id)
