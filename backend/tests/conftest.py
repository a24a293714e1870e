"""Shared test fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from datetime import datetime
from decimal import Decimal
import uuid

from budgetmatch.database import Base
from budgetmatch.dependencies import get_db
from budgetmatch.main import app
from budgetmatch.models.transaction import Transaction, TransactionStatus, TransactionType
from budgetmatch.models.recurring import RecurringTransaction, Frequency
from budgetmatch.services.matching_service import TransactionMatchingService

USER_ID = "user-1"
NOW = datetime(2024, 3, 10, 12, 0, 0)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test using in-memory SQLite."""
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def matching_service(db_session):
    """Matching service with a fixed clock."""
    return TransactionMatchingService(db_session, now=lambda: NOW)


@pytest.fixture
def make_transaction(db_session):
    """Factory for manual pending transactions."""
    def _make(
        amount="42.50",
        description="Groceries",
        category="Food",
        date=NOW,
        txn_type=TransactionType.expense,
        status=TransactionStatus.pending,
        user_id=USER_ID,
        created_at=None,
        **kwargs
    ):
        txn = Transaction(
            id=kwargs.pop("id", str(uuid.uuid4())),
            user_id=user_id,
            description=description,
            amount=Decimal(amount),
            category=category,
            date=date,
            type=txn_type,
            status=status,
            is_manual=kwargs.pop("is_manual", True),
            created_at=created_at or NOW,
            **kwargs
        )
        db_session.add(txn)
        db_session.commit()
        db_session.refresh(txn)
        return txn
    return _make


@pytest.fixture
def make_recurring(db_session):
    """Factory for recurring definitions."""
    def _make(
        name="Netflix",
        amount="15.00",
        category="Subscriptions",
        frequency=Frequency.monthly,
        start_date=datetime(2023, 1, 15),
        next_due_date=datetime(2024, 3, 15),
        is_active=True,
        txn_type=TransactionType.expense,
        user_id=USER_ID,
        created_at=None,
        **kwargs
    ):
        definition = RecurringTransaction(
            id=kwargs.pop("id", str(uuid.uuid4())),
            user_id=user_id,
            name=name,
            amount=Decimal(amount),
            category=category,
            type=txn_type,
            frequency=frequency,
            is_active=is_active,
            start_date=start_date,
            next_due_date=next_due_date,
            total_occurrences=kwargs.pop("total_occurrences", 0),
            created_at=created_at or datetime(2023, 1, 15),
            **kwargs
        )
        db_session.add(definition)
        db_session.commit()
        db_session.refresh(definition)
        return definition
    return _make


@pytest.fixture
def pending_transaction(make_transaction):
    """A manual grocery expense waiting for the bank feed."""
    return make_transaction()


@pytest.fixture
def netflix_recurring(make_recurring):
    """Active monthly subscription due on the 15th."""
    return make_recurring()
