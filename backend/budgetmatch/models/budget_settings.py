"""
Budget settings database model.
"""

import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Boolean, DateTime, Numeric
from sqlalchemy.orm import Session
from budgetmatch.database import Base
from budgetmatch.dates import utcnow
from budgetmatch.config import settings


class BudgetSettings(Base):
    """Per-user allocation percentages and inclusion flags."""

    __tablename__ = "budget_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(128), nullable=False, unique=True, index=True)
    savings_percentage = Column(Numeric(5, 2), nullable=False, default=Decimal("20"))
    debt_payoff_percentage = Column(Numeric(5, 2), nullable=False, default=Decimal("5"))
    include_savings = Column(Boolean, default=True, nullable=False)
    include_debt_payoff = Column(Boolean, default=True, nullable=False)
    include_goal_contributions = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


def get_or_create_budget_settings(db: Session, user_id: str) -> BudgetSettings:
    """Get the user's budget settings, creating defaults if none exist."""
    budget_settings = db.query(BudgetSettings).filter(BudgetSettings.user_id == user_id).first()
    if not budget_settings:
        budget_settings = BudgetSettings(
            id=str(uuid.uuid4()),
            user_id=user_id,
            savings_percentage=settings.default_savings_percentage,
            debt_payoff_percentage=settings.default_debt_payoff_percentage,
            include_savings=True,
            include_debt_payoff=True,
            include_goal_contributions=True,
        )
        db.add(budget_settings)
        db.commit()
        db.refresh(budget_settings)
    return budget_settings
