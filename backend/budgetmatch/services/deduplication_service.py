"""
Deduplication service for bank transactions.
"""

import hashlib
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from budgetmatch.models.transaction import Transaction


def generate_bank_transaction_hash(
    txn_date: datetime,
    amount: Decimal,
    name: str
) -> str:
    """
    Generate SHA256 hash for bank transactions that arrive without an id.
    Uses date|amount|name
    """
    components = [
        txn_date.isoformat(),
        str(abs(Decimal(str(amount))).quantize(Decimal("0.01"))),
        name.strip().lower(),
    ]
    combined = "|".join(components)
    return hashlib.sha256(combined.encode()).hexdigest()


def is_duplicate(db: Session, user_id: str, bank_transaction_id: str) -> bool:
    """Check if a bank transaction was already imported or matched for this user"""
    return db.query(Transaction).filter(
        Transaction.user_id == user_id,
        Transaction.bank_transaction_id == bank_transaction_id
    ).first() is not None
