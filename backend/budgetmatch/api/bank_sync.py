"""
Bank sync endpoint.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from budgetmatch.dependencies import get_db, get_matching_service
from budgetmatch.schemas.matching import BankSyncRequest, BankSyncResponse
from budgetmatch.services.bank_sync_service import sync_bank_transactions
from budgetmatch.services.matching_service import TransactionMatchingService

router = APIRouter(prefix="/users/{user_id}/bank-sync", tags=["bank-sync"])


@router.post("", response_model=BankSyncResponse)
def sync(
    user_id: str,
    request: BankSyncRequest,
    db: Session = Depends(get_db),
    service: TransactionMatchingService = Depends(get_matching_service)
):
    """
    Import a batch of bank transactions.
    Each is matched against pending transactions first; unmatched ones are stored.
    """
    return sync_bank_transactions(db, user_id, request.transactions, matching_service=service)
