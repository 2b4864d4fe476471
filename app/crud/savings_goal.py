# app/crud/savings_goal.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import desc, update, delete
from sqlalchemy.exc import NoResultFound
from app.models.savings_goal import SavingsGoal
from app.core.db_utils import with_db_retry
from typing import List, Optional
from decimal import Decimal
import uuid
from app.schemas.savings import SavingsGoalCreate

@with_db_retry()
async def get_goals_for_user(user_id: uuid.UUID, db: AsyncSession) -> List[SavingsGoal]:
    """All goals owned by the user, newest first"""
    result = await db.execute(
        select(SavingsGoal)
        .where(SavingsGoal.user_id == user_id)
        .order_by(desc(SavingsGoal.created_at), desc(SavingsGoal.id))
    )
    return result.scalars().all()

@with_db_retry()
async def get_goal_by_id(goal_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Optional[SavingsGoal]:
    result = await db.execute(
        select(SavingsGoal).where(SavingsGoal.id == goal_id, SavingsGoal.user_id == user_id)
    )
    return result.scalar_one_or_none()

async def create_goal_for_user(user_id: uuid.UUID, goal_in: SavingsGoalCreate, db: AsyncSession) -> SavingsGoal:
    new_goal = SavingsGoal(**goal_in.model_dump(), user_id=user_id)
    db.add(new_goal)
    await db.commit()
    await db.refresh(new_goal)
    return new_goal

@with_db_retry()
async def update_goal_amount(goal_id: uuid.UUID, user_id: uuid.UUID, new_amount: Decimal, db: AsyncSession) -> None:
    """Set the saved total of one goal. Raises NoResultFound when no row matched."""
    result = await db.execute(
        update(SavingsGoal)
        .where(SavingsGoal.id == goal_id, SavingsGoal.user_id == user_id)
        .values(current_amount=new_amount)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NoResultFound(f"Savings goal {goal_id} not found")
    await db.commit()

async def delete_goal(goal_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> bool:
    result = await db.execute(
        delete(SavingsGoal).where(SavingsGoal.id == goal_id, SavingsGoal.user_id == user_id)
    )
    await db.commit()
    return result.rowcount > 0

async def mark_achieved_goals(db: AsyncSession) -> int:
    """Flag every goal that has reached its target and is not flagged yet"""
    result = await db.execute(
        update(SavingsGoal)
        .where(
            SavingsGoal.current_amount >= SavingsGoal.target_amount,
            SavingsGoal.is_achieved == False,
        )
        .values(is_achieved=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount
