"""
Transaction API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional

from budgetmatch.dependencies import get_db, get_matching_service
from budgetmatch.exceptions import TransactionAlreadyMatchedError, TransactionNotFoundError
from budgetmatch.models.transaction import Transaction, TransactionStatus, TransactionType
from budgetmatch.schemas.transaction import (
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
    TransactionListResponse
)
from budgetmatch.services import transaction_service
from budgetmatch.services.matching_service import TransactionMatchingService

router = APIRouter(prefix="/users/{user_id}/transactions", tags=["transactions"])


def to_response(transaction: Transaction) -> TransactionResponse:
    response = TransactionResponse.model_validate(transaction)
    response.status_text = TransactionMatchingService.get_transaction_status(transaction)["status_text"]
    return response


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    user_id: str,
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    status: Optional[TransactionStatus] = None,
    is_manual: Optional[bool] = None,
    type: Optional[TransactionType] = None,
    db: Session = Depends(get_db)
):
    """List transactions, optionally for one month"""
    if (year is None) != (month is None):
        raise HTTPException(status_code=400, detail="year and month must be given together")

    transactions = transaction_service.list_transactions(
        db, user_id, year=year, month=month, status=status, is_manual=is_manual, txn_type=type
    )
    return TransactionListResponse(
        items=[to_response(t) for t in transactions],
        total=len(transactions)
    )


@router.post("", response_model=TransactionResponse, status_code=201)
def create_transaction(
    user_id: str,
    data: TransactionCreate,
    db: Session = Depends(get_db)
):
    """Create a manual transaction; it stays pending until a bank transaction settles it"""
    transaction = transaction_service.create_manual_transaction(db, user_id, data.model_dump())
    return to_response(transaction)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    user_id: str,
    transaction_id: str,
    db: Session = Depends(get_db)
):
    """Get a single transaction"""
    try:
        transaction = transaction_service.get_transaction(db, user_id, transaction_id)
    except TransactionNotFoundError:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return to_response(transaction)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    user_id: str,
    transaction_id: str,
    update: TransactionUpdate,
    db: Session = Depends(get_db)
):
    """Update descriptive fields of a transaction"""
    try:
        transaction = transaction_service.update_transaction(
            db, user_id, transaction_id, update.model_dump(exclude_unset=True)
        )
    except TransactionNotFoundError:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return to_response(transaction)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    user_id: str,
    transaction_id: str,
    db: Session = Depends(get_db)
):
    """Delete a transaction"""
    try:
        transaction_service.delete_transaction(db, user_id, transaction_id)
    except TransactionNotFoundError:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return None


@router.post("/{transaction_id}/cancel", response_model=TransactionResponse)
def cancel_transaction(
    user_id: str,
    transaction_id: str,
    service: TransactionMatchingService = Depends(get_matching_service)
):
    """Dismiss a pending transaction that will never show up in the bank feed"""
    try:
        transaction = service.mark_as_cancelled(user_id, transaction_id)
    except TransactionNotFoundError:
        raise HTTPException(status_code=404, detail="Transaction not found")
    except TransactionAlreadyMatchedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return to_response(transaction)
