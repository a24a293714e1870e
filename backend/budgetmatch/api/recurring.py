"""API endpoints for recurring transaction management."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List

from budgetmatch.dependencies import get_db
from budgetmatch.exceptions import RecurringTransactionNotFoundError
from budgetmatch.models.recurring import RecurringTransaction
from budgetmatch.schemas.recurring import (
    RecurringTransactionResponse,
    RecurringTransactionUpdate,
    RecurringTransactionCreate,
)
from budgetmatch.services import recurring_service

router = APIRouter(prefix="/users/{user_id}/recurring", tags=["recurring"])


def to_response(db: Session, definition: RecurringTransaction) -> RecurringTransactionResponse:
    response = RecurringTransactionResponse.model_validate(definition)
    response.transaction_count = recurring_service.get_generated_transaction_count(
        db, definition.user_id, definition.id
    )
    return response


@router.get("", response_model=List[RecurringTransactionResponse])
def get_recurring_transactions(
    user_id: str,
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db)
):
    """Get all recurring transactions."""
    definitions = recurring_service.get_recurring_transactions(db, user_id, include_inactive)
    return [to_response(db, d) for d in definitions]


@router.get("/{recurring_id}", response_model=RecurringTransactionResponse)
def get_recurring_transaction(
    user_id: str,
    recurring_id: str,
    db: Session = Depends(get_db)
):
    """Get a single recurring transaction."""
    try:
        definition = recurring_service.get_recurring_transaction(db, user_id, recurring_id)
    except RecurringTransactionNotFoundError:
        raise HTTPException(status_code=404, detail="Recurring transaction not found")
    return to_response(db, definition)


@router.post("", response_model=RecurringTransactionResponse, status_code=201)
def create_recurring_transaction(
    user_id: str,
    data: RecurringTransactionCreate,
    db: Session = Depends(get_db)
):
    """Create a recurring transaction."""
    definition = recurring_service.create_recurring_transaction(db, user_id, data.model_dump())
    response = RecurringTransactionResponse.model_validate(definition)
    response.transaction_count = 0
    return response


@router.patch("/{recurring_id}", response_model=RecurringTransactionResponse)
def update_recurring_transaction(
    user_id: str,
    recurring_id: str,
    update: RecurringTransactionUpdate,
    db: Session = Depends(get_db)
):
    """Update a recurring transaction."""
    try:
        definition = recurring_service.update_recurring_transaction(
            db, user_id, recurring_id, update.model_dump(exclude_unset=True)
        )
    except RecurringTransactionNotFoundError:
        raise HTTPException(status_code=404, detail="Recurring transaction not found")
    return to_response(db, definition)


@router.delete("/{recurring_id}")
def delete_recurring_transaction(
    user_id: str,
    recurring_id: str,
    db: Session = Depends(get_db)
):
    """Delete a recurring transaction (unlinks generated transactions but doesn't delete them)."""
    try:
        recurring_service.delete_recurring_transaction(db, user_id, recurring_id)
    except RecurringTransactionNotFoundError:
        raise HTTPException(status_code=404, detail="Recurring transaction not found")
    return {"deleted": True}
