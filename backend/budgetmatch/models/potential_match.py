"""
Potential match database model.

Holds low-confidence matches waiting for the user to confirm or dismiss.
"""

from sqlalchemy import Column, String, DateTime, Float, Enum
import enum
from budgetmatch.database import Base
from budgetmatch.dates import utcnow


class MatchType(str, enum.Enum):
    """How a match was established."""
    auto = "auto"
    manual = "manual"


class PotentialMatch(Base):
    """One pending review per manual transaction."""

    __tablename__ = "potential_matches"

    user_id = Column(String(128), primary_key=True)
    manual_transaction_id = Column(String(64), primary_key=True)
    bank_transaction_id = Column(String(255), nullable=False)
    match_type = Column(Enum(MatchType), nullable=False, default=MatchType.auto)
    match_confidence = Column(Float, nullable=False)
    matched_at = Column(DateTime, default=utcnow, nullable=False)
    matched_by = Column(String(128), nullable=True)
