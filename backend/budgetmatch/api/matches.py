"""
Transaction match review endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from typing import List

from budgetmatch.dependencies import get_matching_service
from budgetmatch.exceptions import TransactionAlreadyMatchedError, TransactionNotFoundError
from budgetmatch.schemas.matching import ManualMatchRequest, TransactionMatchResponse
from budgetmatch.services.matching_service import TransactionMatchingService

router = APIRouter(prefix="/users/{user_id}/matches", tags=["matches"])


@router.get("/potential", response_model=List[TransactionMatchResponse])
def get_potential_matches(
    user_id: str,
    service: TransactionMatchingService = Depends(get_matching_service)
):
    """Low-confidence matches waiting for review."""
    return service.get_potential_matches(user_id)


@router.post("/manual", response_model=TransactionMatchResponse)
def manual_match(
    user_id: str,
    request: ManualMatchRequest,
    service: TransactionMatchingService = Depends(get_matching_service)
):
    """Confirm that a manual transaction and a bank transaction are the same payment."""
    try:
        return service.manual_match(user_id, request.manual_transaction_id, request.bank_transaction_id)
    except TransactionNotFoundError:
        raise HTTPException(status_code=404, detail="Transaction not found")
    except TransactionAlreadyMatchedError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/potential/{manual_transaction_id}", status_code=204)
def dismiss_match(
    user_id: str,
    manual_transaction_id: str,
    service: TransactionMatchingService = Depends(get_matching_service)
):
    """Reject a potential match. Dismissing twice is harmless."""
    service.dismiss_match(user_id, manual_transaction_id)
    return None
