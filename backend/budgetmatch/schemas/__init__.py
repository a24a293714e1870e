"""
Pydantic schemas package.
"""

from budgetmatch.schemas.category import (
    CategoryBase,
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryList,
)
from budgetmatch.schemas.transaction import (
    TransactionBase,
    TransactionCreate,
    TransactionUpdate,
    TransactionResponse,
    TransactionListResponse,
)
from budgetmatch.schemas.recurring import (
    RecurringTransactionBase,
    RecurringTransactionCreate,
    RecurringTransactionUpdate,
    RecurringTransactionResponse,
)
from budgetmatch.schemas.matching import (
    IncomingBankTransaction,
    TransactionMatchResponse,
    ManualMatchRequest,
    BankSyncRequest,
    BankSyncResult,
    BankSyncResponse,
)
from budgetmatch.schemas.budget import (
    BudgetSettingsResponse,
    BudgetSettingsUpdate,
    GoalCreate,
    GoalUpdate,
    GoalResponse,
    BudgetSummaryResponse,
)

__all__ = [
    "CategoryBase",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "CategoryList",
    "TransactionBase",
    "TransactionCreate",
    "TransactionUpdate",
    "TransactionResponse",
    "TransactionListResponse",
    "RecurringTransactionBase",
    "RecurringTransactionCreate",
    "RecurringTransactionUpdate",
    "RecurringTransactionResponse",
    "IncomingBankTransaction",
    "TransactionMatchResponse",
    "ManualMatchRequest",
    "BankSyncRequest",
    "BankSyncResult",
    "BankSyncResponse",
    "BudgetSettingsResponse",
    "BudgetSettingsUpdate",
    "GoalCreate",
    "GoalUpdate",
    "GoalResponse",
    "BudgetSummaryResponse",
]
