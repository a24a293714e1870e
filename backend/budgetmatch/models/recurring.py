"""
Recurring transaction database model.
"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, Enum
from sqlalchemy.orm import relationship
import enum
from budgetmatch.database import Base
from budgetmatch.dates import utcnow
from budgetmatch.models.transaction import TransactionType


class Frequency(str, enum.Enum):
    """Recurring frequency enumeration."""
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"


class RecurringTransaction(Base):
    """User-defined template projecting future expected transactions."""

    __tablename__ = "recurring_transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String(100), nullable=False, default="")
    type = Column(Enum(TransactionType), nullable=False)
    frequency = Column(Enum(Frequency), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    next_due_date = Column(DateTime, nullable=True)
    last_generated_date = Column(DateTime, nullable=True)
    total_occurrences = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    transactions = relationship("Transaction", back_populates="recurring_transaction")
