"""
Database models package.
"""

from budgetmatch.models.transaction import Transaction, TransactionType, TransactionStatus
from budgetmatch.models.recurring import RecurringTransaction, Frequency
from budgetmatch.models.category import BudgetCategory
from budgetmatch.models.potential_match import PotentialMatch, MatchType
from budgetmatch.models.budget_settings import BudgetSettings, get_or_create_budget_settings
from budgetmatch.models.goal import Goal

__all__ = [
    "Transaction",
    "TransactionType",
    "TransactionStatus",
    "RecurringTransaction",
    "Frequency",
    "BudgetCategory",
    "PotentialMatch",
    "MatchType",
    "BudgetSettings",
    "get_or_create_budget_settings",
    "Goal",
]
