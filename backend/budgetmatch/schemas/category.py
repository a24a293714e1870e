"""
Budget category Pydantic schemas for API validation.
"""

from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import Optional


class CategoryBase(BaseModel):
    """Base category schema."""
    name: str = Field(..., min_length=1, max_length=100)
    monthly_limit: Decimal = Field(Decimal("0"), ge=0)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryCreate(CategoryBase):
    """Schema for creating a category."""
    pass


class CategoryUpdate(BaseModel):
    """Schema for updating a category."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    monthly_limit: Optional[Decimal] = Field(None, ge=0)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryResponse(CategoryBase):
    """Schema for category response."""
    id: str
    is_default: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryList(BaseModel):
    """Schema for listing categories."""
    items: list[CategoryResponse]
    total: int
