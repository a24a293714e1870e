"""Service for recurring transaction schedules and management."""

from typing import List, Optional, Dict, Any
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy.orm import Session
import calendar
import uuid

from budgetmatch.dates import to_naive_utc, utcnow
from budgetmatch.exceptions import RecurringTransactionNotFoundError
from budgetmatch.models.recurring import RecurringTransaction, Frequency
from budgetmatch.models.transaction import Transaction, TransactionType

# Fields a PATCH may clear by sending null
NULLABLE_FIELDS = {"start_date", "end_date", "next_due_date"}


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    try:
        return value.replace(year=year, month=month)
    except ValueError:
        # Clamp to the last day of shorter months
        return value.replace(year=year, month=month, day=calendar.monthrange(year, month)[1])


def calculate_next_expected(last_date: datetime, frequency: Frequency) -> datetime:
    """Calculate the next expected date based on frequency."""
    if frequency == Frequency.weekly:
        return last_date + timedelta(days=7)
    elif frequency == Frequency.biweekly:
        return last_date + timedelta(days=14)
    elif frequency == Frequency.monthly:
        return _add_months(last_date, 1)
    else:
        return last_date + timedelta(days=30)


def monthly_equivalent(amount: Decimal, frequency: Frequency) -> Decimal:
    """Project a recurring amount onto one month (weekly*4, biweekly*2)."""
    if frequency == Frequency.weekly:
        return amount * 4
    elif frequency == Frequency.biweekly:
        return amount * 2
    return amount


def is_active_in_month(definition: RecurringTransaction, year: int, month: int) -> bool:
    """
    Check whether a recurring definition counts toward the given month.

    It must be active, started on or before that month, and (if it has an
    end date) not have ended before that month.
    """
    if not definition.is_active:
        return False

    start = definition.start_date or definition.created_at
    if start is not None and (start.year, start.month) > (year, month):
        return False

    if definition.end_date is not None and (year, month) > (definition.end_date.year, definition.end_date.month):
        return False

    return True


def month_bounds(year: int, month: int) -> tuple:
    """Return [start, end) datetimes for a calendar month."""
    start = datetime(year, month, 1)
    last_day = calendar.monthrange(year, month)[1]
    end = datetime(year, month, last_day) + timedelta(days=1)
    return start, end


def get_recurring_transactions(
    db: Session,
    user_id: str,
    include_inactive: bool = False
) -> List[RecurringTransaction]:
    """Get a user's recurring definitions ordered by name."""
    query = db.query(RecurringTransaction).filter(RecurringTransaction.user_id == user_id)

    if not include_inactive:
        query = query.filter(RecurringTransaction.is_active == True)

    return query.order_by(RecurringTransaction.name).all()


def get_recurring_transaction(db: Session, user_id: str, recurring_id: str) -> RecurringTransaction:
    """Fetch one definition or raise."""
    definition = db.query(RecurringTransaction).filter(
        RecurringTransaction.user_id == user_id,
        RecurringTransaction.id == recurring_id
    ).first()
    if not definition:
        raise RecurringTransactionNotFoundError(f"Recurring transaction {recurring_id} not found")
    return definition


def create_recurring_transaction(db: Session, user_id: str, data: Dict[str, Any]) -> RecurringTransaction:
    """
    Create a recurring definition.

    The first due date defaults to the start date, and the start date to now.
    """
    now = utcnow()
    start_date = to_naive_utc(data.get("start_date")) or now
    definition = RecurringTransaction(
        id=str(uuid.uuid4()),
        user_id=user_id,
        name=data["name"],
        amount=data["amount"],
        category=data.get("category") or "",
        type=data["type"],
        frequency=data["frequency"],
        is_active=data.get("is_active", True),
        start_date=start_date,
        end_date=to_naive_utc(data.get("end_date")),
        next_due_date=to_naive_utc(data.get("next_due_date")) or start_date,
        total_occurrences=0,
    )
    db.add(definition)
    db.commit()
    db.refresh(definition)
    return definition


def update_recurring_transaction(
    db: Session,
    user_id: str,
    recurring_id: str,
    update_data: Dict[str, Any]
) -> RecurringTransaction:
    """Apply a partial update to a definition; null is ignored for required fields."""
    definition = get_recurring_transaction(db, user_id, recurring_id)
    for field, value in update_data.items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        if isinstance(value, datetime):
            value = to_naive_utc(value)
        setattr(definition, field, value)
    db.commit()
    db.refresh(definition)
    return definition


def delete_recurring_transaction(db: Session, user_id: str, recurring_id: str) -> None:
    """Delete a definition (unlinks generated transactions but doesn't delete them)."""
    definition = get_recurring_transaction(db, user_id, recurring_id)

    db.query(Transaction).filter(
        Transaction.user_id == user_id,
        Transaction.recurring_transaction_id == recurring_id
    ).update(
        {Transaction.recurring_transaction_id: None},
        synchronize_session=False
    )

    db.delete(definition)
    db.commit()


def get_generated_transaction_count(db: Session, user_id: str, recurring_id: str) -> int:
    """Get count of concrete transactions materialized from a definition."""
    return db.query(Transaction).filter(
        Transaction.user_id == user_id,
        Transaction.recurring_transaction_id == recurring_id
    ).count()


def projected_monthly_total(
    definitions: List[RecurringTransaction],
    txn_type: TransactionType,
    year: int,
    month: int,
    category: Optional[str] = None
) -> Decimal:
    """Sum the monthly equivalents of definitions eligible for the month."""
    total = Decimal("0")
    for definition in definitions:
        if definition.type != txn_type:
            continue
        if category is not None and (definition.category or "").lower() != category.lower():
            continue
        if not is_active_in_month(definition, year, month):
            continue
        total += monthly_equivalent(Decimal(definition.amount), definition.frequency)
    return total
