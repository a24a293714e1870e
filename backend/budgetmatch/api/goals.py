"""
Financial goal endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import uuid

from budgetmatch.dependencies import get_db
from budgetmatch.models.goal import Goal
from budgetmatch.schemas.budget import GoalCreate, GoalUpdate, GoalResponse

router = APIRouter(prefix="/users/{user_id}/goals", tags=["goals"])


def _get_goal(db: Session, user_id: str, goal_id: str) -> Goal:
    goal = db.query(Goal).filter(Goal.user_id == user_id, Goal.id == goal_id).first()
    if not goal:
        raise HTTPException(status_code=404, detail="Goal not found")
    return goal


@router.get("", response_model=List[GoalResponse])
def list_goals(
    user_id: str,
    db: Session = Depends(get_db)
):
    return db.query(Goal).filter(Goal.user_id == user_id).order_by(Goal.created_at).all()


@router.post("", response_model=GoalResponse, status_code=201)
def create_goal(
    user_id: str,
    data: GoalCreate,
    db: Session = Depends(get_db)
):
    goal = Goal(id=str(uuid.uuid4()), user_id=user_id, **data.model_dump())
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


@router.patch("/{goal_id}", response_model=GoalResponse)
def update_goal(
    user_id: str,
    goal_id: str,
    update: GoalUpdate,
    db: Session = Depends(get_db)
):
    goal = _get_goal(db, user_id, goal_id)
    for field, value in update.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(goal, field, value)
    db.commit()
    db.refresh(goal)
    return goal


@router.delete("/{goal_id}", status_code=204)
def delete_goal(
    user_id: str,
    goal_id: str,
    db: Session = Depends(get_db)
):
    goal = _get_goal(db, user_id, goal_id)
    db.delete(goal)
    db.commit()
    return None
