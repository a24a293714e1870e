"""
Transaction database model.
"""

import enum
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Numeric, Text, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from budgetmatch.database import Base
from budgetmatch.dates import utcnow


class TransactionType(str, enum.Enum):
    """Direction of money flow."""
    income = "income"
    expense = "expense"


class TransactionStatus(str, enum.Enum):
    """Lifecycle of a manual transaction: pending -> paid | cancelled."""
    pending = "pending"
    paid = "paid"
    cancelled = "cancelled"


class Transaction(Base):
    """Transaction model for both manual and bank-imported rows."""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    description = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # Always positive, direction lives in type
    category = Column(String(100), nullable=False, default="")
    date = Column(DateTime, nullable=False, index=True)
    type = Column(Enum(TransactionType), nullable=False)
    status = Column(Enum(TransactionStatus), nullable=True)  # None for bank-imported rows
    is_manual = Column(Boolean, default=True, nullable=False)
    is_auto_imported = Column(Boolean, default=False, nullable=False)
    bank_transaction_id = Column(String(255), nullable=True, index=True)
    recurring_transaction_id = Column(
        String(36), ForeignKey("recurring_transactions.id", ondelete="SET NULL"), nullable=True
    )
    matched_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    recurring_transaction = relationship("RecurringTransaction", back_populates="transactions")

    # Indexes for common queries
    __table_args__ = (
        Index("idx_transaction_user_date", "user_id", "date"),
        Index("idx_transaction_user_bank_id", "user_id", "bank_transaction_id"),
    )
