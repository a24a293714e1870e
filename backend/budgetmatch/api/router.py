"""
Main API router.
"""

from fastapi import APIRouter
from budgetmatch.api import bank_sync, budget, categories, goals, matches, recurring, transactions

api_router = APIRouter()

api_router.include_router(transactions.router)
api_router.include_router(recurring.router)
api_router.include_router(categories.router)
api_router.include_router(matches.router)
api_router.include_router(bank_sync.router)
api_router.include_router(budget.router)
api_router.include_router(goals.router)
