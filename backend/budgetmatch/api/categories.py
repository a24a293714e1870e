"""
Budget category API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from budgetmatch.dependencies import get_db
from budgetmatch.exceptions import (
    CategoryNotFoundError,
    DuplicateCategoryError,
    ProtectedCategoryError,
)
from budgetmatch.schemas.category import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryList,
)
from budgetmatch.services import category_service

router = APIRouter(prefix="/users/{user_id}/categories", tags=["categories"])


@router.get("", response_model=CategoryList)
def list_categories(
    user_id: str,
    db: Session = Depends(get_db)
):
    """List categories, seeding the defaults on first access."""
    categories = category_service.ensure_default_categories(db, user_id)
    return CategoryList(
        items=[CategoryResponse.model_validate(c) for c in categories],
        total=len(categories)
    )


@router.post("", response_model=CategoryResponse, status_code=201)
def create_category(
    user_id: str,
    category: CategoryCreate,
    db: Session = Depends(get_db)
):
    """Create a new category."""
    try:
        return category_service.create_category(
            db, user_id, category.name, monthly_limit=category.monthly_limit, color=category.color
        )
    except DuplicateCategoryError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(
    user_id: str,
    category_id: str,
    db: Session = Depends(get_db)
):
    """Get a specific category."""
    try:
        return category_service.get_category(db, user_id, category_id)
    except CategoryNotFoundError:
        raise HTTPException(status_code=404, detail="Category not found")


@router.patch("/{category_id}", response_model=CategoryResponse)
def update_category(
    user_id: str,
    category_id: str,
    category_update: CategoryUpdate,
    db: Session = Depends(get_db)
):
    """Update a category; default categories keep their name."""
    try:
        return category_service.update_category(
            db,
            user_id,
            category_id,
            name=category_update.name,
            monthly_limit=category_update.monthly_limit,
            color=category_update.color,
        )
    except CategoryNotFoundError:
        raise HTTPException(status_code=404, detail="Category not found")
    except ProtectedCategoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateCategoryError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{category_id}", status_code=204)
def delete_category(
    user_id: str,
    category_id: str,
    db: Session = Depends(get_db)
):
    """Delete a user category. Default categories cannot be deleted."""
    try:
        category_service.delete_category(db, user_id, category_id)
    except CategoryNotFoundError:
        raise HTTPException(status_code=404, detail="Category not found")
    except ProtectedCategoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return None
