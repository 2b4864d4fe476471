# app/api/v1/routes/savings.py
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import date
from decimal import Decimal
import uuid

from app.schemas.savings import (
    SavingsGoalCreate,
    SavingsGoalRead,
    SavingsAmountUpdate,
    AmountUpdateResult,
    SavingsDepositRead,
    SavingsDepositList,
    SavingsSummary,
)
from app.crud.savings_goal import (
    create_goal_for_user,
    get_goals_for_user,
    get_goal_by_id,
)
from app.crud.savings_deposit import (
    get_deposits_for_goal,
    get_deposits_for_user_in_range,
    sum_deposits_for_user,
)
from app.core.database import get_async_session
from app.core.auth import User
from app.api.deps import get_current_user, get_notification_dispatcher, get_user_id
from app.utils.budgeting import calculate_progress, month_range, previous_month_range, to_decimal
from app.utils.notifications import NotificationDispatcher
from app.utils.savings_progress import (
    CompletedGoalError,
    GoalPersistenceError,
    apply_amount_update,
    delete_savings_goal,
)

router = APIRouter(prefix="/savings-goals", tags=["savings"])

@router.get("", response_model=List[SavingsGoalRead])
async def read_savings_goals(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    """List the caller's savings goals, newest first."""
    return await get_goals_for_user(get_user_id(user), db)

@router.post("", response_model=SavingsGoalRead, status_code=status.HTTP_201_CREATED)
async def create_savings_goal(
    goal_in: SavingsGoalCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await create_goal_for_user(get_user_id(user), goal_in, db)

@router.get("/summary", response_model=SavingsSummary)
async def read_savings_summary(
    today: Optional[date] = Query(None, description="Reference day for the monthly figures; defaults to today"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    """
    Totals across all goals plus deposits made this month and last month.

    - **total_saved**: sum of current amounts
    - **this_month_deposits** / **last_month_deposits**: ledger sums by calendar month
    - **achieved_count**: goals whose current amount reached the target
    """
    user_id = get_user_id(user)
    today = today or date.today()
    goals = await get_goals_for_user(user_id, db)

    total_saved = sum((to_decimal(g.current_amount) for g in goals), Decimal("0"))
    total_target = sum((to_decimal(g.target_amount) for g in goals), Decimal("0"))
    achieved_count = sum(1 for g in goals if to_decimal(g.current_amount) >= to_decimal(g.target_amount))

    this_start, this_end = month_range(today)
    last_start, last_end = previous_month_range(today)

    return SavingsSummary(
        total_saved=total_saved,
        total_target=total_target,
        this_month_deposits=await sum_deposits_for_user(user_id, this_start, this_end, db),
        last_month_deposits=await sum_deposits_for_user(user_id, last_start, last_end, db),
        goal_count=len(goals),
        achieved_count=achieved_count,
        overall_progress=round(calculate_progress(total_saved, total_target), 2),
    )

@router.get("/deposits", response_model=SavingsDepositList)
async def read_deposits_in_range(
    start_date: Optional[date] = Query(None, description="Inclusive lower bound on deposit_date"),
    end_date: Optional[date] = Query(None, description="Inclusive upper bound on deposit_date"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must not be after end_date")
    deposits = await get_deposits_for_user_in_range(get_user_id(user), db, start_date, end_date)
    total = sum((to_decimal(d.amount) for d in deposits), Decimal("0"))
    return SavingsDepositList(
        deposits=[SavingsDepositRead.model_validate(d, from_attributes=True) for d in deposits],
        total=total,
    )

@router.get("/{goal_id}", response_model=SavingsGoalRead)
async def read_savings_goal(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    goal = await get_goal_by_id(goal_id, get_user_id(user), db)
    if not goal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Savings goal not found")
    return goal

@router.get("/{goal_id}/deposits", response_model=List[SavingsDepositRead])
async def read_goal_deposits(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    user_id = get_user_id(user)
    goal = await get_goal_by_id(goal_id, user_id, db)
    if not goal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Savings goal not found")
    return await get_deposits_for_goal(goal_id, user_id, db)

@router.patch("/{goal_id}/amount", response_model=AmountUpdateResult)
async def update_savings_amount(
    goal_id: uuid.UUID,
    amount_in: SavingsAmountUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Set the total saved for a goal (not a delta).

    An unknown goal is ignored rather than reported. Re-fetch the goal to see
    the committed state.
    """
    try:
        outcome = await apply_amount_update(db, get_user_id(user), goal_id, amount_in.new_amount, dispatcher)
    except CompletedGoalError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except GoalPersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    if outcome is None:
        return AmountUpdateResult(goal_id=goal_id, status="ignored")

    plan = outcome.plan
    return AmountUpdateResult(
        goal_id=goal_id,
        status="updated",
        old_amount=plan.old_amount,
        new_amount=plan.new_amount,
        deposit_amount=plan.deposit_amount,
        deposit_recorded=outcome.deposit_recorded,
        milestone=plan.milestone.value if plan.milestone else None,
        progress_percentage=round(outcome.progress_percentage, 2),
    )

@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_savings_goal_endpoint(
    goal_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    try:
        deleted = await delete_savings_goal(db, get_user_id(user), goal_id)
    except GoalPersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if not deleted:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Savings goal not found")
    return None
