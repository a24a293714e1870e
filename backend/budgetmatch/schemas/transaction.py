"""
Transaction schemas.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from decimal import Decimal

from budgetmatch.models.transaction import TransactionStatus, TransactionType


class TransactionBase(BaseModel):
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    category: str = ""
    date: datetime
    type: TransactionType


class TransactionCreate(TransactionBase):
    pass


class TransactionUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1)
    amount: Optional[Decimal] = Field(None, gt=0)
    category: Optional[str] = None
    date: Optional[datetime] = None
    type: Optional[TransactionType] = None


class TransactionResponse(BaseModel):
    id: str
    user_id: str
    description: str
    amount: Decimal
    category: str
    date: datetime
    type: TransactionType
    status: Optional[TransactionStatus]
    is_manual: bool
    is_auto_imported: bool
    bank_transaction_id: Optional[str]
    recurring_transaction_id: Optional[str]
    matched_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    # Computed field added by API
    status_text: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]
    total: int
