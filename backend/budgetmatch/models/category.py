"""
Budget category database model.
"""

import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Boolean, DateTime, Numeric
from budgetmatch.database import Base
from budgetmatch.dates import utcnow


class BudgetCategory(Base):
    """Per-user spending category with a monthly limit."""

    __tablename__ = "budget_categories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    monthly_limit = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    color = Column(String(7), nullable=True)  # Hex color
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
