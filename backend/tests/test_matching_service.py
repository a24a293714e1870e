"""Tests for reconciling pending transactions with the bank feed."""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy.exc import OperationalError

from budgetmatch.exceptions import TransactionAlreadyMatchedError, TransactionNotFoundError
from budgetmatch.models.potential_match import MatchType
from budgetmatch.models.recurring import Frequency, RecurringTransaction
from budgetmatch.models.transaction import Transaction, TransactionStatus, TransactionType
from budgetmatch.schemas.matching import IncomingBankTransaction
from budgetmatch.services.matching_service import (
    ApplyResult,
    MatchOutcome,
    PendingCandidate,
    RECURRING_PREFIX,
    TransactionMatch,
    TransactionMatchingService,
)

# Same clock and user as the conftest fixtures
NOW = datetime(2024, 3, 10, 12, 0, 0)
USER_ID = "user-1"


def bank_tx(amount="42.50", name="Grocery Store", date=NOW, transaction_id="bank-1", **kwargs):
    return IncomingBankTransaction(
        name=name,
        amount=Decimal(amount),
        date=date,
        transaction_id=transaction_id,
        **kwargs
    )


def reload(db_session, model, obj_id):
    db_session.expire_all()
    return db_session.query(model).filter(model.id == obj_id).one()


class TestPendingCandidates:
    """Candidate collection from manual rows and recurring definitions."""

    def test_manual_before_recurring(self, matching_service, make_transaction, make_recurring):
        make_recurring(name="Gym", created_at=datetime(2020, 1, 1))
        late = make_transaction(description="Late", created_at=NOW)
        early = make_transaction(description="Early", created_at=NOW - timedelta(days=3))

        candidates = matching_service.get_pending_candidates(USER_ID)

        assert [c.description for c in candidates] == ["Early", "Late", "Gym"]
        assert candidates[0].id == early.id
        assert candidates[1].id == late.id
        assert candidates[2].is_recurring

    def test_only_pending_unlinked_manual_rows(self, matching_service, make_transaction):
        make_transaction(description="Pending")
        make_transaction(description="Paid", status=TransactionStatus.paid, bank_transaction_id="bank-x")
        make_transaction(description="Cancelled", status=TransactionStatus.cancelled)
        make_transaction(description="Imported", is_manual=False, status=None, bank_transaction_id="bank-y")
        make_transaction(description="Linked", bank_transaction_id="bank-z")
        make_transaction(description="Other user", user_id="someone-else")

        candidates = matching_service.get_pending_candidates(USER_ID)

        assert [c.description for c in candidates] == ["Pending"]

    def test_recurring_candidate_fields(self, matching_service, netflix_recurring):
        [candidate] = matching_service.get_pending_candidates(USER_ID)

        assert candidate.id == f"{RECURRING_PREFIX}{netflix_recurring.id}"
        assert candidate.description == "Netflix"
        assert candidate.amount == Decimal("15.00")
        assert candidate.category == "Subscriptions"
        # Next due date (Mar 15) is much closer to now (Mar 10) than the start date
        assert candidate.effective_date == datetime(2024, 3, 15)

    def test_recurring_uses_start_date_when_closer(self, matching_service, make_recurring):
        make_recurring(start_date=datetime(2024, 3, 8), next_due_date=datetime(2024, 4, 8))
        [candidate] = matching_service.get_pending_candidates(USER_ID)
        assert candidate.effective_date == datetime(2024, 3, 8)

    def test_recurring_tie_goes_to_next_due(self, matching_service, make_recurring):
        make_recurring(start_date=NOW - timedelta(days=2), next_due_date=NOW + timedelta(days=2))
        [candidate] = matching_service.get_pending_candidates(USER_ID)
        assert candidate.effective_date == NOW + timedelta(days=2)

    def test_recurring_without_start_uses_created_at(self, matching_service, make_recurring):
        make_recurring(start_date=None, next_due_date=None, created_at=datetime(2024, 3, 1))
        [candidate] = matching_service.get_pending_candidates(USER_ID)
        assert candidate.effective_date == datetime(2024, 3, 1)

    def test_inactive_recurring_excluded(self, matching_service, make_recurring):
        make_recurring(is_active=False)
        assert matching_service.get_pending_candidates(USER_ID) == []

    def test_ended_recurring_still_a_candidate(self, matching_service, make_recurring):
        """No calendar filtering at collection time."""
        make_recurring(end_date=datetime(2023, 6, 1))
        assert len(matching_service.get_pending_candidates(USER_ID)) == 1


class TestReconcileManual:
    """Settling manual transactions."""

    def test_grocery_match_marks_paid(self, db_session, matching_service, pending_transaction):
        result = matching_service.reconcile(USER_ID, bank_tx(amount="-42.50", date=NOW + timedelta(days=1)))

        assert result.outcome == MatchOutcome.matched
        assert result.consumed
        assert result.transaction_id == pending_transaction.id
        assert result.match.match_confidence >= 90

        txn = reload(db_session, Transaction, pending_transaction.id)
        assert txn.status == TransactionStatus.paid
        assert txn.bank_transaction_id == "bank-1"
        assert txn.matched_at == NOW

    def test_outside_date_window_not_matched(self, db_session, matching_service, make_transaction):
        rent = make_transaction(amount="1200.00", description="Rent", category="Rent")

        consumed = matching_service.process_incoming_bank_transaction(
            USER_ID, bank_tx(amount="1200.00", name="Landlord", date=NOW + timedelta(days=20))
        )

        assert consumed is False
        assert reload(db_session, Transaction, rent.id).status == TransactionStatus.pending

    def test_amount_off_by_two_cents_not_matched(self, db_session, matching_service, make_transaction):
        txn = make_transaction(amount="50.02")
        result = matching_service.reconcile(USER_ID, bank_tx(amount="50.00"))
        assert result.outcome == MatchOutcome.no_match
        assert reload(db_session, Transaction, txn.id).status == TransactionStatus.pending

    def test_no_candidates(self, matching_service):
        assert matching_service.reconcile(USER_ID, bank_tx()).outcome == MatchOutcome.no_match

    def test_first_fit_not_best_fit(self, db_session, matching_service, make_transaction):
        """The earlier candidate wins even though the later one scores higher."""
        weak = make_transaction(
            description="Lunch", date=NOW - timedelta(days=10), created_at=NOW - timedelta(days=10)
        )
        strong = make_transaction(description="Grocery Store", date=NOW, created_at=NOW)

        result = matching_service.reconcile(USER_ID, bank_tx())

        assert result.transaction_id == weak.id
        assert result.match.match_confidence == pytest.approx(75.0)
        assert reload(db_session, Transaction, weak.id).status == TransactionStatus.paid
        assert reload(db_session, Transaction, strong.id).status == TransactionStatus.pending

    def test_one_bank_transaction_settles_one_candidate(self, db_session, matching_service, make_transaction):
        first = make_transaction(created_at=NOW - timedelta(hours=1))
        second = make_transaction(created_at=NOW)

        matching_service.reconcile(USER_ID, bank_tx())

        assert reload(db_session, Transaction, first.id).status == TransactionStatus.paid
        assert reload(db_session, Transaction, second.id).status == TransactionStatus.pending

    def test_second_bank_transaction_settles_next_candidate(self, db_session, matching_service, make_transaction):
        first = make_transaction(created_at=NOW - timedelta(hours=1))
        second = make_transaction(created_at=NOW)

        matching_service.reconcile(USER_ID, bank_tx(transaction_id="bank-1"))
        result = matching_service.reconcile(USER_ID, bank_tx(transaction_id="bank-2"))

        assert result.transaction_id == second.id
        assert reload(db_session, Transaction, first.id).bank_transaction_id == "bank-1"
        assert reload(db_session, Transaction, second.id).bank_transaction_id == "bank-2"

    def test_cancelled_transaction_never_matched(self, matching_service, pending_transaction):
        matching_service.mark_as_cancelled(USER_ID, pending_transaction.id)
        assert matching_service.reconcile(USER_ID, bank_tx()).outcome == MatchOutcome.no_match

    def test_other_users_transactions_ignored(self, matching_service, make_transaction):
        make_transaction(user_id="someone-else")
        assert matching_service.reconcile(USER_ID, bank_tx()).outcome == MatchOutcome.no_match


class TestReconcileRecurring:
    """Settling an occurrence of a recurring definition."""

    def test_materializes_paid_transaction(self, db_session, matching_service, netflix_recurring):
        result = matching_service.reconcile(
            USER_ID, bank_tx(amount="15", name="NETFLIX.COM", date=datetime(2024, 3, 15))
        )

        assert result.outcome == MatchOutcome.matched
        generated = reload(db_session, Transaction, result.transaction_id)
        assert generated.status == TransactionStatus.paid
        assert generated.recurring_transaction_id == netflix_recurring.id
        assert generated.bank_transaction_id == "bank-1"
        assert generated.amount == Decimal("15.00")
        assert generated.description == "Netflix"
        assert generated.type == TransactionType.expense
        assert generated.date == NOW

        definition = reload(db_session, RecurringTransaction, netflix_recurring.id)
        assert definition.next_due_date == datetime(2024, 4, 15)
        assert definition.total_occurrences == 1
        assert definition.last_generated_date == NOW

    def test_exactly_one_transaction_per_match(self, db_session, matching_service, netflix_recurring):
        matching_service.reconcile(USER_ID, bank_tx(amount="15", name="NETFLIX.COM", date=datetime(2024, 3, 15)))
        db_session.expire_all()
        generated = db_session.query(Transaction).filter(
            Transaction.recurring_transaction_id == netflix_recurring.id
        ).all()
        assert len(generated) == 1

    def test_weekly_definition_advances_seven_days(self, db_session, matching_service, make_recurring):
        gym = make_recurring(name="Gym", amount="10", frequency=Frequency.weekly,
                             start_date=datetime(2024, 1, 1), next_due_date=datetime(2024, 3, 11))

        matching_service.reconcile(USER_ID, bank_tx(amount="10", name="GYM", date=datetime(2024, 3, 11)))

        assert reload(db_session, RecurringTransaction, gym.id).next_due_date == datetime(2024, 3, 18)

    def test_manual_candidates_tried_first(self, db_session, matching_service, netflix_recurring, make_transaction):
        manual = make_transaction(amount="15.00", description="Netflix", category="Subscriptions")

        result = matching_service.reconcile(USER_ID, bank_tx(amount="15", name="NETFLIX.COM", date=NOW))

        assert result.transaction_id == manual.id
        definition = reload(db_session, RecurringTransaction, netflix_recurring.id)
        assert definition.total_occurrences == 0

    def test_stale_schedule_reports_already_matched(self, db_session, matching_service, netflix_recurring):
        """Another import advanced the schedule after this one read it."""
        # Change the row underneath the loaded definition, which still holds Mar 15
        db_session.query(RecurringTransaction).filter(
            RecurringTransaction.id == netflix_recurring.id
        ).update({RecurringTransaction.next_due_date: datetime(2024, 4, 15)}, synchronize_session=False)

        match = TransactionMatch(
            manual_transaction_id=f"{RECURRING_PREFIX}{netflix_recurring.id}",
            bank_transaction_id="bank-1",
            match_type=MatchType.auto,
            match_confidence=90.0,
            matched_at=NOW,
        )
        result, transaction_id = matching_service.apply_match(USER_ID, match)

        assert result == ApplyResult.already_matched
        assert transaction_id is None
        assert db_session.query(Transaction).count() == 0

    def test_deleted_definition_not_found(self, matching_service):
        match = TransactionMatch(
            manual_transaction_id=f"{RECURRING_PREFIX}missing",
            bank_transaction_id="bank-1",
            match_type=MatchType.auto,
            match_confidence=90.0,
            matched_at=NOW,
        )
        assert matching_service.apply_match(USER_ID, match) == (ApplyResult.not_found, None)


class TestConcurrentSettlement:
    """Two imports racing for the same pending transaction."""

    def _match(self, transaction_id, bank_id):
        return TransactionMatch(
            manual_transaction_id=transaction_id,
            bank_transaction_id=bank_id,
            match_type=MatchType.auto,
            match_confidence=90.0,
            matched_at=NOW,
        )

    def test_second_apply_loses(self, db_session, matching_service, pending_transaction):
        first = matching_service.apply_match(USER_ID, self._match(pending_transaction.id, "bank-1"))
        second = matching_service.apply_match(USER_ID, self._match(pending_transaction.id, "bank-2"))

        assert first == (ApplyResult.applied, pending_transaction.id)
        assert second == (ApplyResult.already_matched, None)
        assert reload(db_session, Transaction, pending_transaction.id).bank_transaction_id == "bank-1"

    def test_missing_transaction(self, matching_service):
        assert matching_service.apply_match(USER_ID, self._match("missing", "bank-1")) == (ApplyResult.not_found, None)

    def test_reconcile_moves_on_from_stale_candidate(self, db_session, matching_service, make_transaction, monkeypatch):
        taken = make_transaction(created_at=NOW - timedelta(hours=1))
        free = make_transaction(created_at=NOW)
        stale_candidates = matching_service.get_pending_candidates(USER_ID)

        # Another import settles the first candidate after it was collected
        matching_service.apply_match(USER_ID, self._match(taken.id, "bank-other"))
        monkeypatch.setattr(matching_service, "get_pending_candidates", lambda user_id: stale_candidates)

        result = matching_service.reconcile(USER_ID, bank_tx())

        assert result.outcome == MatchOutcome.matched
        assert result.transaction_id == free.id
        assert reload(db_session, Transaction, taken.id).bank_transaction_id == "bank-other"


class TestFailures:
    """Storage errors never escape reconcile."""

    def test_collection_failure(self, matching_service, monkeypatch):
        def boom(user_id):
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        monkeypatch.setattr(matching_service, "get_pending_candidates", boom)

        result = matching_service.reconcile(USER_ID, bank_tx())

        assert result.outcome == MatchOutcome.failed
        assert not result.consumed
        assert matching_service.process_incoming_bank_transaction(USER_ID, bank_tx()) is False

    def test_apply_failure(self, db_session, matching_service, pending_transaction, monkeypatch):
        def boom(*args, **kwargs):
            raise OperationalError("UPDATE", {}, Exception("disk I/O error"))
        monkeypatch.setattr(matching_service, "_mark_paid", boom)

        result = matching_service.reconcile(USER_ID, bank_tx())

        assert result.outcome == MatchOutcome.failed
        assert reload(db_session, Transaction, pending_transaction.id).status == TransactionStatus.pending


class TestPotentialMatches:
    """Low-confidence matches are kept for review instead of applied."""

    @pytest.fixture
    def strict_service(self, db_session):
        return TransactionMatchingService(db_session, now=lambda: NOW, min_confidence=95)

    def test_below_threshold_stored(self, db_session, strict_service, make_transaction):
        txn = make_transaction(description="Lunch", date=NOW - timedelta(days=10))

        result = strict_service.reconcile(USER_ID, bank_tx())

        assert result.outcome == MatchOutcome.no_match
        assert reload(db_session, Transaction, txn.id).status == TransactionStatus.pending
        [potential] = strict_service.get_potential_matches(USER_ID)
        assert potential.manual_transaction_id == txn.id
        assert potential.bank_transaction_id == "bank-1"
        assert potential.match_confidence == pytest.approx(75.0)
        assert potential.match_type == MatchType.auto

    def test_newer_potential_match_replaces_older(self, strict_service, make_transaction):
        make_transaction(description="Lunch", date=NOW - timedelta(days=10))

        strict_service.reconcile(USER_ID, bank_tx(transaction_id="bank-1"))
        strict_service.reconcile(USER_ID, bank_tx(transaction_id="bank-2"))

        [potential] = strict_service.get_potential_matches(USER_ID)
        assert potential.bank_transaction_id == "bank-2"

    def test_scan_continues_past_weak_candidate(self, db_session, strict_service, make_transaction):
        weak = make_transaction(description="Lunch", date=NOW - timedelta(days=10),
                                created_at=NOW - timedelta(days=10))
        strong = make_transaction(description="Grocery Store", category="Food", date=NOW, created_at=NOW)

        result = strict_service.reconcile(USER_ID, bank_tx(category="Food"))

        assert result.transaction_id == strong.id
        assert reload(db_session, Transaction, weak.id).status == TransactionStatus.pending
        assert len(strict_service.get_potential_matches(USER_ID)) == 1

    def test_dismiss_is_idempotent(self, strict_service, make_transaction):
        txn = make_transaction(description="Lunch", date=NOW - timedelta(days=10))
        strict_service.reconcile(USER_ID, bank_tx())

        strict_service.dismiss_match(USER_ID, txn.id)
        strict_service.dismiss_match(USER_ID, txn.id)

        assert strict_service.get_potential_matches(USER_ID) == []


class TestManualMatch:
    """User-confirmed matches."""

    def test_marks_paid_with_full_confidence(self, db_session, matching_service, pending_transaction):
        match = matching_service.manual_match(USER_ID, pending_transaction.id, "bank-9")

        assert match.match_type == MatchType.manual
        assert match.match_confidence == 100.0
        assert match.matched_by == USER_ID
        txn = reload(db_session, Transaction, pending_transaction.id)
        assert txn.status == TransactionStatus.paid
        assert txn.bank_transaction_id == "bank-9"

    def test_clears_potential_match(self, db_session, make_transaction):
        service = TransactionMatchingService(db_session, now=lambda: NOW, min_confidence=95)
        txn = make_transaction(description="Lunch", date=NOW - timedelta(days=10))
        service.reconcile(USER_ID, bank_tx())

        service.manual_match(USER_ID, txn.id, "bank-1")

        assert service.get_potential_matches(USER_ID) == []

    def test_already_matched(self, matching_service, pending_transaction):
        matching_service.manual_match(USER_ID, pending_transaction.id, "bank-1")
        with pytest.raises(TransactionAlreadyMatchedError):
            matching_service.manual_match(USER_ID, pending_transaction.id, "bank-2")

    def test_not_found(self, matching_service):
        with pytest.raises(TransactionNotFoundError):
            matching_service.manual_match(USER_ID, "missing", "bank-1")


class TestMarkAsCancelled:

    def test_cancels_pending(self, matching_service, pending_transaction):
        txn = matching_service.mark_as_cancelled(USER_ID, pending_transaction.id)
        assert txn.status == TransactionStatus.cancelled
        assert txn.cancelled_at == NOW

    def test_cannot_cancel_paid(self, matching_service, pending_transaction):
        matching_service.manual_match(USER_ID, pending_transaction.id, "bank-1")
        with pytest.raises(TransactionAlreadyMatchedError):
            matching_service.mark_as_cancelled(USER_ID, pending_transaction.id)

    def test_not_found(self, matching_service):
        with pytest.raises(TransactionNotFoundError):
            matching_service.mark_as_cancelled(USER_ID, "missing")


class TestTransactionStatus:
    """Display status for the transaction list."""

    def test_paid_recurring(self):
        txn = Transaction(recurring_transaction_id="r-1", status=TransactionStatus.paid, is_manual=True)
        assert TransactionMatchingService.get_transaction_status(txn)["status_text"] == "Paid"

    def test_paid_manual_shows_manual(self):
        txn = Transaction(status=TransactionStatus.paid, is_manual=True)
        assert TransactionMatchingService.get_transaction_status(txn)["status_text"] == "Manual"

    def test_bank_import(self):
        txn = Transaction(status=None, is_manual=False)
        status = TransactionMatchingService.get_transaction_status(txn)
        assert status["status"] == "normal"
        assert status["status_text"] == "Bank Transaction"


def test_pending_candidate_recurring_flag():
    candidate = PendingCandidate(
        id=f"{RECURRING_PREFIX}abc",
        user_id=USER_ID,
        description="Netflix",
        amount=Decimal("15"),
        category="Subscriptions",
        date=NOW,
        type=TransactionType.expense,
    )
    assert candidate.is_recurring
    assert candidate.effective_date == NOW
