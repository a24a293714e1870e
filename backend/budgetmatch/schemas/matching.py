"""
Schemas for bank transactions and match records.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from decimal import Decimal

from budgetmatch.models.potential_match import MatchType
from budgetmatch.models.transaction import TransactionType


class IncomingBankTransaction(BaseModel):
    """A transaction as delivered by the bank feed."""
    name: str
    amount: Decimal  # Sign follows the feed; matching compares absolute values
    date: datetime
    category: Optional[str] = None
    transaction_id: Optional[str] = None
    id: Optional[str] = None
    type: Optional[TransactionType] = None


class TransactionMatchResponse(BaseModel):
    manual_transaction_id: str
    bank_transaction_id: str
    match_type: MatchType
    match_confidence: float
    matched_at: datetime
    matched_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ManualMatchRequest(BaseModel):
    """User confirms that a manual transaction and a bank transaction are the same payment."""
    manual_transaction_id: str = Field(..., min_length=1)
    bank_transaction_id: str = Field(..., min_length=1)


class BankSyncRequest(BaseModel):
    transactions: list[IncomingBankTransaction]


class BankSyncResult(BaseModel):
    """Outcome of a single bank transaction in a sync batch."""
    bank_transaction_id: str
    outcome: str  # matched, imported, duplicate, failed
    manual_transaction_id: Optional[str] = None
    match_confidence: Optional[float] = None
    transaction_id: Optional[str] = None


class BankSyncResponse(BaseModel):
    results: list[BankSyncResult]
    matched: int
    imported: int
    duplicates: int
    failed: int
