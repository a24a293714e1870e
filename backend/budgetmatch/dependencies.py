"""
FastAPI dependencies.
"""

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from budgetmatch.database import SessionLocal
from budgetmatch.services.matching_service import TransactionMatchingService


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database sessions.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_matching_service(db: Session = Depends(get_db)) -> TransactionMatchingService:
    """Build a matching service bound to the request's session."""
    return TransactionMatchingService(db)
