"""
Budget category management: default seeding and protection.
"""

import logging
import uuid
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from budgetmatch.exceptions import (
    CategoryNotFoundError,
    DuplicateCategoryError,
    ProtectedCategoryError,
)
from budgetmatch.models.category import BudgetCategory

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {"name": "Rent", "color": "#FF6B6B"},
    {"name": "Car Payment", "color": "#4ECDC4"},
    {"name": "Insurance", "color": "#45B7D1"},
    {"name": "Utilities", "color": "#96CEB4"},
    {"name": "Internet", "color": "#FFEAA7"},
    {"name": "Phone", "color": "#DDA0DD"},
    {"name": "Subscriptions", "color": "#98D8C8"},
    {"name": "Credit Card", "color": "#F7DC6F"},
    {"name": "Loan Payment", "color": "#BB8FCE"},
    {"name": "Food", "color": "#85C1E9"},
    {"name": "Transportation", "color": "#F8C471"},
    {"name": "Health", "color": "#82E0AA"},
    {"name": "Entertainment", "color": "#F1948A"},
    {"name": "Shopping", "color": "#85C1E9"},
    {"name": "Business", "color": "#D7BDE2"},
    {"name": "Other Expenses", "color": "#A9CCE3"},
]

# Old category names renamed in place when a user's categories are loaded
LEGACY_CATEGORY_NAMES: Dict[str, str] = {
    "transport": "Transportation",
}

_DEFAULT_NAMES = {c["name"].lower() for c in DEFAULT_CATEGORIES}


def normalize_name(name: str) -> str:
    return name.strip().lower()


def is_default_category(name: str) -> bool:
    """Default categories keep their name and cannot be deleted."""
    return normalize_name(name) in _DEFAULT_NAMES


def ensure_default_categories(db: Session, user_id: str) -> List[BudgetCategory]:
    """
    Bring a user's categories in line with the defaults.

    Renames legacy names, adds any missing default, and returns the full
    list. Safe to call repeatedly.
    """
    existing = db.query(BudgetCategory).filter(BudgetCategory.user_id == user_id).all()
    changed = False

    # A legacy row is only renamed when no row already holds the new name
    taken = {normalize_name(c.name) for c in existing}
    by_name = {}
    for category in existing:
        new_name = LEGACY_CATEGORY_NAMES.get(normalize_name(category.name))
        if new_name and normalize_name(new_name) not in taken:
            taken.add(normalize_name(new_name))
            logger.info("migrating category user_id=%s from=%s to=%s", user_id, category.name, new_name)
            category.name = new_name
            changed = True
        key = normalize_name(category.name)
        if key in _DEFAULT_NAMES and not category.is_default:
            category.is_default = True
            changed = True
        by_name.setdefault(key, category)

    for default in DEFAULT_CATEGORIES:
        if normalize_name(default["name"]) in by_name:
            continue
        category = BudgetCategory(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=default["name"],
            monthly_limit=Decimal("0"),
            color=default["color"],
            is_default=True,
        )
        db.add(category)
        by_name[normalize_name(category.name)] = category
        changed = True

    if changed:
        db.commit()

    return list_categories(db, user_id)


def list_categories(db: Session, user_id: str) -> List[BudgetCategory]:
    return db.query(BudgetCategory).filter(
        BudgetCategory.user_id == user_id
    ).order_by(BudgetCategory.created_at, BudgetCategory.name).all()


def get_category(db: Session, user_id: str, category_id: str) -> BudgetCategory:
    category = db.query(BudgetCategory).filter(
        BudgetCategory.user_id == user_id,
        BudgetCategory.id == category_id
    ).first()
    if not category:
        raise CategoryNotFoundError(f"Category {category_id} not found")
    return category


def _find_by_name(db: Session, user_id: str, name: str) -> Optional[BudgetCategory]:
    wanted = normalize_name(name)
    for category in db.query(BudgetCategory).filter(BudgetCategory.user_id == user_id).all():
        if normalize_name(category.name) == wanted:
            return category
    return None


def create_category(
    db: Session,
    user_id: str,
    name: str,
    monthly_limit: Decimal = Decimal("0"),
    color: Optional[str] = None
) -> BudgetCategory:
    """Create a user category; names are unique per user, case-insensitively."""
    name = name.strip()
    if _find_by_name(db, user_id, name):
        raise DuplicateCategoryError(f"Category '{name}' already exists")

    category = BudgetCategory(
        id=str(uuid.uuid4()),
        user_id=user_id,
        name=name,
        monthly_limit=monthly_limit,
        color=color,
        is_default=False,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(
    db: Session,
    user_id: str,
    category_id: str,
    name: Optional[str] = None,
    monthly_limit: Optional[Decimal] = None,
    color: Optional[str] = None
) -> BudgetCategory:
    category = get_category(db, user_id, category_id)

    if name is not None and name.strip() != category.name:
        if category.is_default:
            raise ProtectedCategoryError(f"Default category '{category.name}' cannot be renamed")
        other = _find_by_name(db, user_id, name)
        if other and other.id != category.id:
            raise DuplicateCategoryError(f"Category '{name.strip()}' already exists")
        category.name = name.strip()
    if monthly_limit is not None:
        category.monthly_limit = monthly_limit
    if color is not None:
        category.color = color

    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, user_id: str, category_id: str) -> None:
    category = get_category(db, user_id, category_id)
    if category.is_default:
        raise ProtectedCategoryError(f"Default category '{category.name}' cannot be deleted")
    db.delete(category)
    db.commit()
