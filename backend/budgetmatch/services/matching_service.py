"""
Transaction matching: reconciles manual and recurring-projected transactions
against transactions arriving from the bank feed.

Flow for one incoming bank transaction:

1. collect pending candidates (manual transactions first, then one virtual
   candidate per active recurring definition);
2. score each candidate with ``evaluate_match``;
3. apply the first candidate that clears the confidence threshold
   (first fit, not best fit) and report the bank transaction as consumed.

When nothing qualifies the caller persists the bank transaction normally.
"""

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from budgetmatch.config import settings
from budgetmatch.dates import to_naive_utc, utcnow
from budgetmatch.exceptions import TransactionAlreadyMatchedError, TransactionNotFoundError
from budgetmatch.models.potential_match import MatchType, PotentialMatch
from budgetmatch.models.recurring import RecurringTransaction
from budgetmatch.models.transaction import Transaction, TransactionStatus, TransactionType
from budgetmatch.schemas.matching import IncomingBankTransaction
from budgetmatch.services.deduplication_service import generate_bank_transaction_hash
from budgetmatch.services.recurring_service import calculate_next_expected
from budgetmatch.services.similarity import category_similarity, description_similarity

logger = logging.getLogger(__name__)

RECURRING_PREFIX = "recurring_"
BASE_CONFIDENCE = 70.0
SECONDS_PER_DAY = 60 * 60 * 24


class MatchOutcome(str, enum.Enum):
    """What happened to an incoming bank transaction."""
    matched = "matched"
    no_match = "no_match"
    failed = "failed"


class ApplyResult(str, enum.Enum):
    """Result of writing a match back to storage."""
    applied = "applied"
    already_matched = "already_matched"
    not_found = "not_found"
    failed = "failed"


@dataclass
class PendingCandidate:
    """A transaction that may still be settled by a bank transaction."""

    id: str
    user_id: str
    description: str
    amount: Decimal
    category: str
    date: datetime
    type: TransactionType
    expected_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_recurring(self) -> bool:
        return self.id.startswith(RECURRING_PREFIX)

    @property
    def effective_date(self) -> datetime:
        return self.expected_date or self.date


@dataclass
class TransactionMatch:
    """Ephemeral pairing of a pending candidate with a bank transaction."""

    manual_transaction_id: str
    bank_transaction_id: str
    match_type: MatchType
    match_confidence: float
    matched_at: datetime
    matched_by: Optional[str] = None


@dataclass
class ReconciliationResult:
    outcome: MatchOutcome
    match: Optional[TransactionMatch] = None
    transaction_id: Optional[str] = None

    @property
    def consumed(self) -> bool:
        return self.outcome == MatchOutcome.matched


def days_between(a: datetime, b: datetime) -> float:
    """Absolute distance between two timestamps in (fractional) days."""
    return abs((to_naive_utc(a) - to_naive_utc(b)).total_seconds()) / SECONDS_PER_DAY


def resolve_bank_transaction_id(bank_tx: IncomingBankTransaction) -> str:
    """Feed id if present, otherwise a stable id derived from the content."""
    if bank_tx.transaction_id:
        return bank_tx.transaction_id
    if bank_tx.id:
        return bank_tx.id
    digest = generate_bank_transaction_hash(to_naive_utc(bank_tx.date), bank_tx.amount, bank_tx.name)
    return f"bank_{digest[:32]}"


def date_proximity_bonus(days_difference: float) -> float:
    if days_difference <= 1:
        return 20.0
    if days_difference <= 3:
        return 15.0
    if days_difference <= 7:
        return 10.0
    if days_difference <= 14:
        return 5.0
    return 0.0


def calculate_match_confidence(
    pending: PendingCandidate,
    bank_tx: IncomingBankTransaction,
    days_difference: float
) -> float:
    """Base 70 plus date, category and description bonuses, clamped to [0, 100]."""
    confidence = BASE_CONFIDENCE
    confidence += date_proximity_bonus(days_difference)
    confidence += 10 * category_similarity(pending.category, bank_tx.category or "")
    confidence += 10 * description_similarity(pending.description, bank_tx.name)
    return max(0.0, min(confidence, 100.0))


def evaluate_match(
    pending: PendingCandidate,
    bank_tx: IncomingBankTransaction,
    amount_tolerance: Optional[Decimal] = None,
    tolerance_days: Optional[int] = None,
    matched_at: Optional[datetime] = None
) -> Optional[TransactionMatch]:
    """
    Decide whether a pending candidate and a bank transaction are the same payment.

    Returns None unless both hard filters pass: the amounts agree within the
    tolerance (bank amount compared by absolute value) and the dates are at
    most ``tolerance_days`` apart.
    """
    if amount_tolerance is None:
        amount_tolerance = settings.amount_tolerance
    if tolerance_days is None:
        tolerance_days = settings.match_tolerance_days

    amount_diff = abs(Decimal(str(pending.amount)) - abs(Decimal(str(bank_tx.amount))))
    if amount_diff > amount_tolerance:
        return None

    days_difference = days_between(bank_tx.date, pending.effective_date)
    if days_difference > tolerance_days:
        return None

    return TransactionMatch(
        manual_transaction_id=pending.id,
        bank_transaction_id=resolve_bank_transaction_id(bank_tx),
        match_type=MatchType.auto,
        match_confidence=calculate_match_confidence(pending, bank_tx, days_difference),
        matched_at=matched_at or utcnow(),
    )


class TransactionMatchingService:
    """
    Reconciles incoming bank transactions for one database session.

    Construct one per unit of work; the clock and the matching thresholds
    can be overridden for tests.
    """

    def __init__(
        self,
        db: Session,
        now: Callable[[], datetime] = utcnow,
        min_confidence: Optional[float] = None,
        tolerance_days: Optional[int] = None,
        amount_tolerance: Optional[Decimal] = None,
    ):
        self.db = db
        self._now = now
        self.min_confidence = settings.min_match_confidence if min_confidence is None else min_confidence
        self.tolerance_days = settings.match_tolerance_days if tolerance_days is None else tolerance_days
        self.amount_tolerance = settings.amount_tolerance if amount_tolerance is None else amount_tolerance

    def now(self) -> datetime:
        return to_naive_utc(self._now())

    # Candidate collection

    def get_pending_candidates(self, user_id: str) -> List[PendingCandidate]:
        """
        Build the candidate list: eligible manual transactions first, then
        one virtual candidate per active recurring definition.

        No calendar filtering happens here; a definition past its end date
        is still a candidate.
        """
        candidates: List[PendingCandidate] = []

        manual_transactions = self.db.query(Transaction).filter(
            Transaction.user_id == user_id,
            Transaction.is_manual == True,
            Transaction.bank_transaction_id.is_(None),
            Transaction.status == TransactionStatus.pending
        ).order_by(Transaction.created_at, Transaction.id).all()

        for txn in manual_transactions:
            candidates.append(PendingCandidate(
                id=txn.id,
                user_id=txn.user_id,
                description=txn.description,
                amount=Decimal(txn.amount),
                category=txn.category or "",
                date=txn.date,
                type=txn.type,
                expected_date=txn.date,
                created_at=txn.created_at,
            ))

        definitions = self.db.query(RecurringTransaction).filter(
            RecurringTransaction.user_id == user_id,
            RecurringTransaction.is_active == True
        ).order_by(RecurringTransaction.created_at, RecurringTransaction.id).all()

        now = self.now()
        for definition in definitions:
            closest = self._closest_recurring_date(definition, now)
            if closest is None:
                logger.warning("recurring definition has no usable date recurring_id=%s", definition.id)
                continue
            candidates.append(PendingCandidate(
                id=f"{RECURRING_PREFIX}{definition.id}",
                user_id=definition.user_id,
                description=definition.name,
                amount=Decimal(definition.amount),
                category=definition.category or "",
                date=closest,
                type=definition.type,
                expected_date=closest,
                created_at=definition.created_at,
            ))

        logger.debug(
            "collected candidates user_id=%s manual=%d recurring=%d",
            user_id, len(manual_transactions), len(candidates) - len(manual_transactions)
        )
        return candidates

    @staticmethod
    def _closest_recurring_date(definition: RecurringTransaction, now: datetime) -> Optional[datetime]:
        """Whichever of start date (or creation) and next due date is nearer to now."""
        start = definition.start_date or definition.created_at
        next_due = definition.next_due_date
        if start is None:
            return next_due
        if next_due is None:
            return start
        if abs(now - start) < abs(now - next_due):
            return start
        return next_due

    # Orchestration

    def reconcile(self, user_id: str, bank_tx: IncomingBankTransaction) -> ReconciliationResult:
        """
        Try to settle a pending candidate with an incoming bank transaction.

        Never raises for storage problems: they are logged, rolled back and
        reported as ``MatchOutcome.failed``.
        """
        try:
            candidates = self.get_pending_candidates(user_id)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("candidate collection failed user_id=%s bank_name=%s", user_id, bank_tx.name)
            return ReconciliationResult(outcome=MatchOutcome.failed)

        for candidate in candidates:
            match = evaluate_match(
                candidate,
                bank_tx,
                amount_tolerance=self.amount_tolerance,
                tolerance_days=self.tolerance_days,
                matched_at=self.now(),
            )
            if match is None:
                continue

            # Any candidate that passes both hard filters scores at least 75,
            # so the default threshold of 60 never rejects it. Kept as-is
            # until product decides whether the base score is intended.
            if match.match_confidence < self.min_confidence:
                logger.info(
                    "match below threshold user_id=%s candidate_id=%s confidence=%.1f threshold=%.1f",
                    user_id, candidate.id, match.match_confidence, self.min_confidence
                )
                self.store_potential_match(user_id, match)
                continue

            result, transaction_id = self.apply_match(user_id, match)
            if result == ApplyResult.applied:
                logger.info(
                    "match applied user_id=%s candidate_id=%s bank_id=%s confidence=%.1f",
                    user_id, candidate.id, match.bank_transaction_id, match.match_confidence
                )
                return ReconciliationResult(
                    outcome=MatchOutcome.matched,
                    match=match,
                    transaction_id=transaction_id,
                )
            if result == ApplyResult.failed:
                return ReconciliationResult(outcome=MatchOutcome.failed, match=match)
            # Another import settled this candidate first; keep scanning.
            logger.info(
                "candidate no longer available user_id=%s candidate_id=%s result=%s",
                user_id, candidate.id, result.value
            )

        logger.info("no match user_id=%s bank_name=%s candidates=%d", user_id, bank_tx.name, len(candidates))
        return ReconciliationResult(outcome=MatchOutcome.no_match)

    def process_incoming_bank_transaction(self, user_id: str, bank_tx: IncomingBankTransaction) -> bool:
        """
        True when the bank transaction was consumed by a match and must not be
        stored separately; False when it should be stored as a normal transaction.
        """
        return self.reconcile(user_id, bank_tx).consumed

    # State transitions

    def apply_match(self, user_id: str, match: TransactionMatch) -> Tuple[ApplyResult, Optional[str]]:
        """
        Write a match back to storage.

        Returns the result and the id of the transaction now marked paid.
        """
        try:
            if match.manual_transaction_id.startswith(RECURRING_PREFIX):
                return self._materialize_recurring(user_id, match)
            result = self._mark_paid(user_id, match.manual_transaction_id, match.bank_transaction_id, match.matched_at)
            return result, match.manual_transaction_id if result == ApplyResult.applied else None
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "applying match failed user_id=%s candidate_id=%s bank_id=%s",
                user_id, match.manual_transaction_id, match.bank_transaction_id
            )
            return ApplyResult.failed, None

    def _mark_paid(
        self,
        user_id: str,
        transaction_id: str,
        bank_transaction_id: str,
        matched_at: datetime
    ) -> ApplyResult:
        # Conditional update: only a still-pending, unlinked row flips to paid,
        # so two concurrent imports cannot both settle the same transaction.
        updated = self.db.query(Transaction).filter(
            Transaction.user_id == user_id,
            Transaction.id == transaction_id,
            Transaction.status == TransactionStatus.pending,
            Transaction.bank_transaction_id.is_(None)
        ).update(
            {
                Transaction.status: TransactionStatus.paid,
                Transaction.bank_transaction_id: bank_transaction_id,
                Transaction.matched_at: matched_at,
                Transaction.updated_at: self.now(),
            },
            synchronize_session=False
        )
        self.db.commit()

        if updated:
            return ApplyResult.applied
        if self._find_transaction(user_id, transaction_id) is None:
            return ApplyResult.not_found
        return ApplyResult.already_matched

    def _materialize_recurring(self, user_id: str, match: TransactionMatch) -> Tuple[ApplyResult, Optional[str]]:
        recurring_id = match.manual_transaction_id[len(RECURRING_PREFIX):]
        definition = self.db.query(RecurringTransaction).filter(
            RecurringTransaction.user_id == user_id,
            RecurringTransaction.id == recurring_id
        ).first()
        if definition is None:
            return ApplyResult.not_found, None

        now = self.now()
        current_due = definition.next_due_date
        base_date = current_due or definition.start_date or definition.created_at or now
        next_due = calculate_next_expected(base_date, definition.frequency)

        # Advance the schedule only if nobody else advanced it since we read it.
        query = self.db.query(RecurringTransaction).filter(
            RecurringTransaction.user_id == user_id,
            RecurringTransaction.id == recurring_id
        )
        if current_due is None:
            query = query.filter(RecurringTransaction.next_due_date.is_(None))
        else:
            query = query.filter(RecurringTransaction.next_due_date == current_due)

        updated = query.update(
            {
                RecurringTransaction.next_due_date: next_due,
                RecurringTransaction.last_generated_date: now,
                RecurringTransaction.total_occurrences: RecurringTransaction.total_occurrences + 1,
                RecurringTransaction.updated_at: now,
            },
            synchronize_session=False
        )
        if not updated:
            self.db.rollback()
            return ApplyResult.already_matched, None

        transaction = Transaction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            description=definition.name,
            amount=definition.amount,
            category=definition.category or "",
            date=now,
            type=definition.type,
            status=TransactionStatus.paid,
            is_manual=True,
            is_auto_imported=False,
            bank_transaction_id=match.bank_transaction_id,
            recurring_transaction_id=recurring_id,
            matched_at=match.matched_at,
        )
        self.db.add(transaction)
        self.db.commit()

        return ApplyResult.applied, transaction.id

    def _find_transaction(self, user_id: str, transaction_id: str) -> Optional[Transaction]:
        return self.db.query(Transaction).filter(
            Transaction.user_id == user_id,
            Transaction.id == transaction_id
        ).first()

    def manual_match(
        self,
        user_id: str,
        manual_transaction_id: str,
        bank_transaction_id: str
    ) -> TransactionMatch:
        """User-confirmed match; always confidence 100."""
        match = TransactionMatch(
            manual_transaction_id=manual_transaction_id,
            bank_transaction_id=bank_transaction_id,
            match_type=MatchType.manual,
            match_confidence=100.0,
            matched_at=self.now(),
            matched_by=user_id,
        )

        result = self._mark_paid(user_id, manual_transaction_id, bank_transaction_id, match.matched_at)
        if result == ApplyResult.not_found:
            raise TransactionNotFoundError(f"Transaction {manual_transaction_id} not found")
        if result == ApplyResult.already_matched:
            raise TransactionAlreadyMatchedError(f"Transaction {manual_transaction_id} is no longer pending")

        self.dismiss_match(user_id, manual_transaction_id)
        logger.info(
            "manual match applied user_id=%s manual_id=%s bank_id=%s",
            user_id, manual_transaction_id, bank_transaction_id
        )
        return match

    def mark_as_cancelled(self, user_id: str, transaction_id: str) -> Transaction:
        """User dismisses a pending transaction."""
        now = self.now()
        updated = self.db.query(Transaction).filter(
            Transaction.user_id == user_id,
            Transaction.id == transaction_id,
            Transaction.status == TransactionStatus.pending
        ).update(
            {
                Transaction.status: TransactionStatus.cancelled,
                Transaction.cancelled_at: now,
                Transaction.updated_at: now,
            },
            synchronize_session=False
        )
        self.db.commit()

        transaction = self._find_transaction(user_id, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        if not updated:
            raise TransactionAlreadyMatchedError(f"Transaction {transaction_id} is no longer pending")
        return transaction

    # Potential matches

    def store_potential_match(self, user_id: str, match: TransactionMatch) -> bool:
        """Keep a low-confidence match for user review, replacing any previous one."""
        try:
            self.db.merge(PotentialMatch(
                user_id=user_id,
                manual_transaction_id=match.manual_transaction_id,
                bank_transaction_id=match.bank_transaction_id,
                match_type=match.match_type,
                match_confidence=match.match_confidence,
                matched_at=match.matched_at,
                matched_by=match.matched_by,
            ))
            self.db.commit()
            return True
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "storing potential match failed user_id=%s manual_id=%s",
                user_id, match.manual_transaction_id
            )
            return False

    def get_potential_matches(self, user_id: str) -> List[PotentialMatch]:
        return self.db.query(PotentialMatch).filter(
            PotentialMatch.user_id == user_id
        ).order_by(PotentialMatch.matched_at).all()

    def dismiss_match(self, user_id: str, manual_transaction_id: str) -> None:
        """Drop the stored potential match, if any."""
        self.db.query(PotentialMatch).filter(
            PotentialMatch.user_id == user_id,
            PotentialMatch.manual_transaction_id == manual_transaction_id
        ).delete(synchronize_session=False)
        self.db.commit()

    # Display

    @staticmethod
    def get_transaction_status(transaction: Transaction) -> dict:
        """Only transactions generated from a recurring definition show as paid."""
        if transaction.recurring_transaction_id and transaction.status == TransactionStatus.paid:
            return {"status": "paid", "status_text": "Paid", "status_color": "#10b981"}

        if transaction.is_manual:
            return {"status": "normal", "status_text": "Manual", "status_color": "#6b7280"}
        return {"status": "normal", "status_text": "Bank Transaction", "status_color": "#10b981"}
