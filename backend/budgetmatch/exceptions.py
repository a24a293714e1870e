"""
Domain errors raised by the service layer.

All of them subclass ValueError so callers that only care about
"bad request" semantics can keep catching ValueError.
"""


class TransactionNotFoundError(ValueError):
    """No transaction with the given id exists for the user."""


class RecurringTransactionNotFoundError(ValueError):
    """No recurring definition with the given id exists for the user."""


class TransactionAlreadyMatchedError(ValueError):
    """The transaction left the pending state before this write landed."""


class CategoryNotFoundError(ValueError):
    """No budget category with the given id exists for the user."""


class ProtectedCategoryError(ValueError):
    """Default categories cannot be renamed or deleted."""


class DuplicateCategoryError(ValueError):
    """A category with the same name (case-insensitive) already exists."""