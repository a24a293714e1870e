"""
Bank sync: feeds bank transactions through matching one at a time.
"""

import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from budgetmatch.dates import to_naive_utc
from budgetmatch.schemas.matching import BankSyncResponse, BankSyncResult, IncomingBankTransaction
from budgetmatch.services.deduplication_service import is_duplicate
from budgetmatch.services.matching_service import (
    MatchOutcome,
    TransactionMatchingService,
    resolve_bank_transaction_id,
)
from budgetmatch.services.transaction_service import create_imported_transaction

logger = logging.getLogger(__name__)


def sync_bank_transactions(
    db: Session,
    user_id: str,
    bank_transactions: Iterable[IncomingBankTransaction],
    matching_service: TransactionMatchingService = None,
) -> BankSyncResponse:
    """
    Import a batch of bank transactions.

    Each one is skipped if already known, otherwise offered to the matcher;
    unmatched ones are stored as auto-imported transactions. A failure on
    one record is logged and the batch continues.
    """
    service = matching_service or TransactionMatchingService(db)
    results = []

    for bank_tx in bank_transactions:
        bank_id = resolve_bank_transaction_id(bank_tx)

        try:
            if is_duplicate(db, user_id, bank_id):
                results.append(BankSyncResult(bank_transaction_id=bank_id, outcome="duplicate"))
                continue
        except SQLAlchemyError:
            db.rollback()
            logger.exception("duplicate check failed user_id=%s bank_id=%s", user_id, bank_id)
            results.append(BankSyncResult(bank_transaction_id=bank_id, outcome="failed"))
            continue

        reconciliation = service.reconcile(user_id, bank_tx)
        if reconciliation.outcome == MatchOutcome.matched:
            results.append(BankSyncResult(
                bank_transaction_id=bank_id,
                outcome="matched",
                manual_transaction_id=reconciliation.match.manual_transaction_id,
                match_confidence=reconciliation.match.match_confidence,
                transaction_id=reconciliation.transaction_id,
            ))
            continue

        try:
            transaction = create_imported_transaction(db, user_id, bank_tx, bank_id, to_naive_utc(bank_tx.date))
        except SQLAlchemyError:
            db.rollback()
            logger.exception("storing bank transaction failed user_id=%s bank_id=%s", user_id, bank_id)
            results.append(BankSyncResult(bank_transaction_id=bank_id, outcome="failed"))
            continue

        results.append(BankSyncResult(
            bank_transaction_id=bank_id,
            outcome="imported",
            transaction_id=transaction.id,
        ))

    counts = {outcome: sum(1 for r in results if r.outcome == outcome)
              for outcome in ("matched", "imported", "duplicate", "failed")}
    logger.info(
        "bank sync finished user_id=%s matched=%d imported=%d duplicates=%d failed=%d",
        user_id, counts["matched"], counts["imported"], counts["duplicate"], counts["failed"]
    )

    return BankSyncResponse(
        results=results,
        matched=counts["matched"],
        imported=counts["imported"],
        duplicates=counts["duplicate"],
        failed=counts["failed"],
    )
