"""Tests for match review endpoints."""

from datetime import timedelta

from budgetmatch.models.potential_match import MatchType, PotentialMatch
from budgetmatch.models.transaction import TransactionStatus

BASE = "/api/v1/users/user-1/matches"


def test_potential_matches_empty(client):
    response = client.get(f"{BASE}/potential")
    assert response.status_code == 200
    assert response.json() == []


def test_potential_matches_listed(client, db_session, pending_transaction):
    db_session.add(PotentialMatch(
        user_id="user-1",
        manual_transaction_id=pending_transaction.id,
        bank_transaction_id="bank-1",
        match_type=MatchType.auto,
        match_confidence=72.5,
        matched_at=pending_transaction.date,
    ))
    db_session.commit()

    [match] = client.get(f"{BASE}/potential").json()
    assert match["manual_transaction_id"] == pending_transaction.id
    assert match["match_type"] == "auto"
    assert match["match_confidence"] == 72.5


def test_manual_match(client, db_session, pending_transaction):
    response = client.post(f"{BASE}/manual", json={
        "manual_transaction_id": pending_transaction.id,
        "bank_transaction_id": "bank-7",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["match_type"] == "manual"
    assert data["match_confidence"] == 100.0
    assert data["matched_by"] == "user-1"

    db_session.expire_all()
    assert db_session.get(type(pending_transaction), pending_transaction.id).status == TransactionStatus.paid


def test_manual_match_conflict(client, pending_transaction):
    payload = {"manual_transaction_id": pending_transaction.id, "bank_transaction_id": "bank-7"}
    client.post(f"{BASE}/manual", json=payload)
    assert client.post(f"{BASE}/manual", json=payload).status_code == 409


def test_manual_match_not_found(client):
    response = client.post(f"{BASE}/manual", json={
        "manual_transaction_id": "missing",
        "bank_transaction_id": "bank-7",
    })
    assert response.status_code == 404


def test_dismiss_idempotent(client, db_session, pending_transaction):
    db_session.add(PotentialMatch(
        user_id="user-1",
        manual_transaction_id=pending_transaction.id,
        bank_transaction_id="bank-1",
        match_type=MatchType.auto,
        match_confidence=70.0,
        matched_at=pending_transaction.date + timedelta(days=1),
    ))
    db_session.commit()

    assert client.delete(f"{BASE}/potential/{pending_transaction.id}").status_code == 204
    assert client.delete(f"{BASE}/potential/{pending_transaction.id}").status_code == 204
    assert client.get(f"{BASE}/potential").json() == []
