"""
Financial goal database model.
"""

import uuid
from decimal import Decimal
from sqlalchemy import Column, String, DateTime, Numeric
from budgetmatch.database import Base
from budgetmatch.dates import utcnow


class Goal(Base):
    """Savings goal; its monthly contribution reduces the spendable budget."""

    __tablename__ = "goals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    target_amount = Column(Numeric(12, 2), nullable=False)
    current_amount = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    monthly_contribution = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
