"""
Budget settings and summary endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional

from budgetmatch.dependencies import get_db
from budgetmatch.models.budget_settings import get_or_create_budget_settings
from budgetmatch.schemas.budget import (
    BudgetSettingsResponse,
    BudgetSettingsUpdate,
    BudgetSummaryResponse,
)
from budgetmatch.services.budget_service import build_budget_summary

router = APIRouter(prefix="/users/{user_id}/budget", tags=["budget"])


@router.get("/settings", response_model=BudgetSettingsResponse)
def get_budget_settings(
    user_id: str,
    db: Session = Depends(get_db)
):
    """Get budget settings, creating defaults if needed."""
    return get_or_create_budget_settings(db, user_id)


@router.put("/settings", response_model=BudgetSettingsResponse)
def update_budget_settings(
    user_id: str,
    update: BudgetSettingsUpdate,
    db: Session = Depends(get_db)
):
    """Update allocation percentages and inclusion flags."""
    budget_settings = get_or_create_budget_settings(db, user_id)

    update_data = update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is not None:
            setattr(budget_settings, field, value)

    db.commit()
    db.refresh(budget_settings)
    return budget_settings


@router.get("/summary", response_model=BudgetSummaryResponse)
def get_budget_summary(
    user_id: str,
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db)
):
    """Income, allocations and per-category spending for a month (defaults to current)."""
    today = date.today()
    return build_budget_summary(db, user_id, year or today.year, month or today.month)
