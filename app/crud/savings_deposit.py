# app/crud/savings_deposit.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import desc, delete, func
from app.models.savings_deposit import SavingsDeposit
from typing import List, Optional
from datetime import date
from decimal import Decimal
import uuid

async def create_deposit(
    user_id: uuid.UUID,
    goal_id: uuid.UUID,
    amount: Decimal,
    deposit_date: date,
    db: AsyncSession,
) -> SavingsDeposit:
    """Append one ledger row. Not retried: a repeat would double-count."""
    new_deposit = SavingsDeposit(
        user_id=user_id,
        savings_goal_id=goal_id,
        amount=amount,
        deposit_date=deposit_date,
    )
    db.add(new_deposit)
    await db.commit()
    await db.refresh(new_deposit)
    return new_deposit

async def delete_deposits_for_goal(goal_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> int:
    result = await db.execute(
        delete(SavingsDeposit).where(
            SavingsDeposit.savings_goal_id == goal_id,
            SavingsDeposit.user_id == user_id,
        )
    )
    await db.commit()
    return result.rowcount

async def get_deposits_for_goal(goal_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> List[SavingsDeposit]:
    result = await db.execute(
        select(SavingsDeposit)
        .where(SavingsDeposit.savings_goal_id == goal_id, SavingsDeposit.user_id == user_id)
        .order_by(desc(SavingsDeposit.deposit_date), desc(SavingsDeposit.created_at))
    )
    return result.scalars().all()

async def get_deposits_for_user_in_range(
    user_id: uuid.UUID,
    db: AsyncSession,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[SavingsDeposit]:
    """Deposits with start_date <= deposit_date <= end_date; open ends are unbounded"""
    query = select(SavingsDeposit).where(SavingsDeposit.user_id == user_id)
    if start_date is not None:
        query = query.where(SavingsDeposit.deposit_date >= start_date)
    if end_date is not None:
        query = query.where(SavingsDeposit.deposit_date <= end_date)
    result = await db.execute(query.order_by(desc(SavingsDeposit.deposit_date)))
    return result.scalars().all()

async def sum_deposits_for_user(user_id: uuid.UUID, start_date: date, end_date: date, db: AsyncSession) -> Decimal:
    result = await db.execute(
        select(func.coalesce(func.sum(SavingsDeposit.amount), 0)).where(
            SavingsDeposit.user_id == user_id,
            SavingsDeposit.deposit_date >= start_date,
            SavingsDeposit.deposit_date <= end_date,
        )
    )
    return Decimal(str(result.scalar_one())).quantize(Decimal("0.01"))
