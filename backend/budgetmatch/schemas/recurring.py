"""Pydantic schemas for recurring transactions."""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from decimal import Decimal

from budgetmatch.models.recurring import Frequency
from budgetmatch.models.transaction import TransactionType


class RecurringTransactionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0)
    category: str = ""
    type: TransactionType
    frequency: Frequency
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class RecurringTransactionCreate(RecurringTransactionBase):
    next_due_date: Optional[datetime] = None
    is_active: bool = True


class RecurringTransactionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=0)
    category: Optional[str] = None
    type: Optional[TransactionType] = None
    frequency: Optional[Frequency] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    next_due_date: Optional[datetime] = None
    is_active: Optional[bool] = None


class RecurringTransactionResponse(RecurringTransactionBase):
    id: str
    user_id: str
    is_active: bool
    next_due_date: Optional[datetime] = None
    last_generated_date: Optional[datetime] = None
    total_occurrences: int
    created_at: datetime

    # Computed fields added by API
    transaction_count: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
