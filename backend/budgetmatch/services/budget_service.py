"""
Budget allocation arithmetic and the monthly budget summary.

Two formulas coexist: ``total_budget`` allocates savings and debt payoff
from total income, while ``net_income_budget`` subtracts expenses first and
takes debt payoff from what is left after savings. Both are kept under
distinct names until product settles on one.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from budgetmatch.models.budget_settings import get_or_create_budget_settings
from budgetmatch.models.goal import Goal
from budgetmatch.models.recurring import RecurringTransaction
from budgetmatch.models.transaction import Transaction, TransactionStatus, TransactionType
from budgetmatch.services.category_service import ensure_default_categories
from budgetmatch.services.recurring_service import month_bounds, projected_monthly_total

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class AllocationFlags:
    include_savings: bool = True
    include_debt: bool = True
    include_goals: bool = True


@dataclass
class NetIncomeBudget:
    net_income: Decimal
    savings_amount: Decimal
    discretionary_income: Decimal
    debt_payoff_amount: Decimal
    remaining_balance: Decimal


@dataclass
class CategoryBudget:
    category_id: str
    name: str
    monthly_limit: Decimal
    spent: Decimal
    remaining: Decimal
    over_budget: bool
    color: Optional[str] = None


@dataclass
class BudgetSummary:
    year: int
    month: int
    transaction_income: Decimal
    recurring_income: Decimal
    total_income: Decimal
    total_expenses: Decimal
    savings_percentage: Decimal
    debt_payoff_percentage: Decimal
    savings_amount: Decimal
    debt_payoff_amount: Decimal
    goal_contributions: Decimal
    total_budget: Decimal
    net_income_budget: NetIncomeBudget
    categories: List[CategoryBudget] = field(default_factory=list)


def _dec(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def total_budget(
    total_income,
    savings_pct,
    debt_pct,
    goal_contributions,
    flags: AllocationFlags = AllocationFlags()
) -> Decimal:
    """Income minus the enabled savings, debt-payoff and goal allocations."""
    net_base = _dec(total_income)
    savings = net_base * _dec(savings_pct) / HUNDRED if flags.include_savings else ZERO
    debt = net_base * _dec(debt_pct) / HUNDRED if flags.include_debt else ZERO
    goals = _dec(goal_contributions) if flags.include_goals else ZERO
    return net_base - savings - debt - goals


def net_income_budget(total_income, total_expenses, savings_pct, debt_pct) -> NetIncomeBudget:
    """Expenses come off first; debt payoff is a share of what's left after savings."""
    income = _dec(total_income)
    net_income = income - _dec(total_expenses)
    savings_amount = income * _dec(savings_pct) / HUNDRED
    discretionary = net_income - savings_amount
    debt_payoff = discretionary * _dec(debt_pct) / HUNDRED
    return NetIncomeBudget(
        net_income=net_income,
        savings_amount=savings_amount,
        discretionary_income=discretionary,
        debt_payoff_amount=debt_payoff,
        remaining_balance=discretionary - debt_payoff,
    )


def category_remaining(monthly_limit, spent) -> tuple:
    """Remaining amount floored at zero, plus whether the limit was exceeded."""
    remaining = _dec(monthly_limit) - _dec(spent)
    return max(remaining, ZERO), remaining < ZERO


def total_goal_contributions(goals: List[Goal]) -> Decimal:
    return sum((_dec(g.monthly_contribution) for g in goals if _dec(g.monthly_contribution) > 0), ZERO)


def _month_transactions(db: Session, user_id: str, year: int, month: int) -> List[Transaction]:
    start, end = month_bounds(year, month)
    return db.query(Transaction).filter(
        Transaction.user_id == user_id,
        Transaction.date >= start,
        Transaction.date < end,
        # Cancelled rows never happened; NULL status marks bank imports
        or_(Transaction.status.is_(None), Transaction.status != TransactionStatus.cancelled)
    ).all()


def total_income_for_month(
    transactions: List[Transaction],
    definitions: List[RecurringTransaction],
    year: int,
    month: int
) -> tuple:
    """Return (transaction income, projected recurring income)."""
    transaction_income = sum(
        (_dec(t.amount) for t in transactions if t.type == TransactionType.income), ZERO
    )
    recurring_income = projected_monthly_total(definitions, TransactionType.income, year, month)
    return transaction_income, recurring_income


def build_budget_summary(db: Session, user_id: str, year: int, month: int) -> BudgetSummary:
    """Assemble income, allocations and per-category spending for one month."""
    budget_settings = get_or_create_budget_settings(db, user_id)
    transactions = _month_transactions(db, user_id, year, month)
    definitions = db.query(RecurringTransaction).filter(RecurringTransaction.user_id == user_id).all()
    goals = db.query(Goal).filter(Goal.user_id == user_id).all()
    categories = ensure_default_categories(db, user_id)

    transaction_income, recurring_income = total_income_for_month(transactions, definitions, year, month)
    total_income = transaction_income + recurring_income

    expenses = [t for t in transactions if t.type == TransactionType.expense]
    total_expenses = sum((_dec(t.amount) for t in expenses), ZERO)

    savings_pct = _dec(budget_settings.savings_percentage)
    debt_pct = _dec(budget_settings.debt_payoff_percentage)
    goal_contributions = total_goal_contributions(goals)
    flags = AllocationFlags(
        include_savings=budget_settings.include_savings,
        include_debt=budget_settings.include_debt_payoff,
        include_goals=budget_settings.include_goal_contributions,
    )

    category_budgets = []
    for category in categories:
        name_key = category.name.lower()
        spent = sum(
            (_dec(t.amount) for t in expenses if (t.category or "").lower() == name_key), ZERO
        )
        spent += projected_monthly_total(definitions, TransactionType.expense, year, month, category=category.name)
        remaining, over_budget = category_remaining(category.monthly_limit, spent)
        category_budgets.append(CategoryBudget(
            category_id=category.id,
            name=category.name,
            monthly_limit=_dec(category.monthly_limit),
            spent=spent,
            remaining=remaining,
            over_budget=over_budget,
            color=category.color,
        ))

    return BudgetSummary(
        year=year,
        month=month,
        transaction_income=transaction_income,
        recurring_income=recurring_income,
        total_income=total_income,
        total_expenses=total_expenses,
        savings_percentage=savings_pct,
        debt_payoff_percentage=debt_pct,
        savings_amount=total_income * savings_pct / HUNDRED,
        debt_payoff_amount=total_income * debt_pct / HUNDRED,
        goal_contributions=goal_contributions,
        total_budget=total_budget(total_income, savings_pct, debt_pct, goal_contributions, flags),
        net_income_budget=net_income_budget(total_income, total_expenses, savings_pct, debt_pct),
        categories=category_budgets,
    )
