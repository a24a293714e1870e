"""
Budget settings, goal and summary schemas.
"""

from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import Optional


class BudgetSettingsResponse(BaseModel):
    savings_percentage: Decimal
    debt_payoff_percentage: Decimal
    include_savings: bool
    include_debt_payoff: bool
    include_goal_contributions: bool
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BudgetSettingsUpdate(BaseModel):
    savings_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    debt_payoff_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    include_savings: Optional[bool] = None
    include_debt_payoff: Optional[bool] = None
    include_goal_contributions: Optional[bool] = None


class GoalBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(Decimal("0"), ge=0)
    monthly_contribution: Decimal = Field(Decimal("0"), ge=0)


class GoalCreate(GoalBase):
    pass


class GoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    target_amount: Optional[Decimal] = Field(None, gt=0)
    current_amount: Optional[Decimal] = Field(None, ge=0)
    monthly_contribution: Optional[Decimal] = Field(None, ge=0)


class GoalResponse(GoalBase):
    id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NetIncomeBudgetResponse(BaseModel):
    net_income: Decimal
    savings_amount: Decimal
    discretionary_income: Decimal
    debt_payoff_amount: Decimal
    remaining_balance: Decimal

    model_config = ConfigDict(from_attributes=True)


class CategoryBudgetResponse(BaseModel):
    category_id: str
    name: str
    monthly_limit: Decimal
    spent: Decimal
    remaining: Decimal
    over_budget: bool
    color: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BudgetSummaryResponse(BaseModel):
    year: int
    month: int
    transaction_income: Decimal
    recurring_income: Decimal
    total_income: Decimal
    total_expenses: Decimal
    savings_percentage: Decimal
    debt_payoff_percentage: Decimal
    savings_amount: Decimal
    debt_payoff_amount: Decimal
    goal_contributions: Decimal
    total_budget: Decimal
    net_income_budget: NetIncomeBudgetResponse
    categories: list[CategoryBudgetResponse]

    model_config = ConfigDict(from_attributes=True)
