# app/utils/savings_progress.py
"""
Savings-goal progress engine.

An amount update is decided by ``plan_amount_update``, a pure function that
turns a goal snapshot and a new total into an ``AmountUpdatePlan``. The plan
lists the effects to carry out, each tagged with its failure policy:

- ``persist_goal``   FATAL            the goal row is the authoritative balance
- ``notify``         FIRE_AND_FORGET  at most one milestone alert
- ``insert_deposit`` BEST_EFFORT      ledger row for a strictly positive delta

``apply_amount_update`` runs a plan against the database and the
notification dispatcher. ``delete_savings_goal`` removes a goal's deposits
(best-effort) and then the goal itself (fatal).
"""
import logging
import random
import uuid
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.savings_deposit import create_deposit, delete_deposits_for_goal
from app.crud.savings_goal import delete_goal, get_goal_by_id, update_goal_amount
from app.utils.budgeting import PROGRESS_MILESTONE_PCT, calculate_progress, percentage_of, to_decimal
from app.utils.notifications import (
    GOAL_ACHIEVED_TAG,
    GOAL_PROGRESS_TAG,
    Chooser,
    NotificationDispatcher,
    achieved_message,
    progress_message,
)

logger = logging.getLogger(__name__)

COMPLETED_GOAL_MESSAGE = (
    "Cannot add more money to a completed savings goal! The target has already been reached."
)


# ────────────────────────────────────────────────────────────────────────────────
# ERRORS
# ────────────────────────────────────────────────────────────────────────────────
class SavingsGoalError(Exception):
    """Base class for savings engine failures"""


class CompletedGoalError(SavingsGoalError):
    """An increase was attempted on a goal that already reached its target"""

    def __init__(self, goal_id: uuid.UUID):
        super().__init__(COMPLETED_GOAL_MESSAGE)
        self.goal_id = goal_id


class GoalPersistenceError(SavingsGoalError):
    """The goal row itself could not be written or deleted"""


# ────────────────────────────────────────────────────────────────────────────────
# PLAN MODEL
# ────────────────────────────────────────────────────────────────────────────────
class EffectPolicy(str, Enum):
    FATAL = "fatal"
    BEST_EFFORT = "best_effort"
    FIRE_AND_FORGET = "fire_and_forget"


class Milestone(str, Enum):
    ACHIEVED = "achieved"
    PROGRESS = "progress"


class GoalSnapshot(BaseModel):
    """The prior state of a goal that an update is decided against"""
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    target_amount: Decimal
    current_amount: Decimal

    class Config:
        from_attributes = True


class PersistGoalAmount(BaseModel):
    kind: Literal["persist_goal"] = "persist_goal"
    policy: EffectPolicy = EffectPolicy.FATAL
    goal_id: uuid.UUID
    user_id: uuid.UUID
    amount: Decimal


class Notify(BaseModel):
    kind: Literal["notify"] = "notify"
    policy: EffectPolicy = EffectPolicy.FIRE_AND_FORGET
    user_id: uuid.UUID
    milestone: Milestone
    category: str
    title: str
    body: str


class InsertDeposit(BaseModel):
    kind: Literal["insert_deposit"] = "insert_deposit"
    policy: EffectPolicy = EffectPolicy.BEST_EFFORT
    goal_id: uuid.UUID
    user_id: uuid.UUID
    amount: Decimal
    deposit_date: date


Effect = Union[PersistGoalAmount, Notify, InsertDeposit]


class AmountUpdatePlan(BaseModel):
    goal_id: uuid.UUID
    target_amount: Decimal
    old_amount: Decimal
    new_amount: Decimal
    deposit_amount: Decimal
    old_percentage: Decimal
    new_percentage: Decimal
    milestone: Optional[Milestone] = None
    effects: List[Effect] = Field(default_factory=list)

    @property
    def notification(self) -> Optional[Notify]:
        return next((e for e in self.effects if isinstance(e, Notify)), None)

    @property
    def deposit(self) -> Optional[InsertDeposit]:
        return next((e for e in self.effects if isinstance(e, InsertDeposit)), None)


class AmountUpdateOutcome(BaseModel):
    plan: AmountUpdatePlan
    deposit_recorded: bool = False
    deposit_id: Optional[uuid.UUID] = None
    notification_queued: bool = False

    @property
    def progress_percentage(self) -> float:
        return calculate_progress(self.plan.new_amount, self.plan.target_amount)


# ────────────────────────────────────────────────────────────────────────────────
# PURE DECISIONS
# ────────────────────────────────────────────────────────────────────────────────
def detect_milestone(old_amount: Decimal, new_amount: Decimal, target: Decimal) -> Optional[Milestone]:
    """
    Which one-time milestone this single update crosses, if any.

    Completion wins over the progress tier when both are crossed together.
    """
    if new_amount >= target and old_amount < target:
        return Milestone.ACHIEVED
    if percentage_of(new_amount, target) >= PROGRESS_MILESTONE_PCT > percentage_of(old_amount, target):
        return Milestone.PROGRESS
    return None


def plan_amount_update(
    goal: GoalSnapshot,
    new_amount: Any,
    today: Optional[date] = None,
    chooser: Chooser = random.choice,
) -> AmountUpdatePlan:
    """
    Decide everything an amount update does, without doing any of it.

    Raises CompletedGoalError when the goal already reached its target and
    the new total is higher than the current one. Decreases are always
    allowed.
    """
    old_amount = to_decimal(goal.current_amount)
    new_amount = to_decimal(new_amount)
    target = to_decimal(goal.target_amount)

    if old_amount >= target and new_amount > old_amount:
        raise CompletedGoalError(goal.id)

    deposit_amount = new_amount - old_amount
    old_percentage = percentage_of(old_amount, target)
    new_percentage = percentage_of(new_amount, target)
    milestone = detect_milestone(old_amount, new_amount, target)

    effects: List[Effect] = [
        PersistGoalAmount(goal_id=goal.id, user_id=goal.user_id, amount=new_amount),
    ]

    if milestone is Milestone.ACHIEVED:
        title, body = achieved_message(goal.name, target, chooser=chooser)
        effects.append(Notify(
            user_id=goal.user_id,
            milestone=milestone,
            category=GOAL_ACHIEVED_TAG,
            title=title,
            body=body,
        ))
    elif milestone is Milestone.PROGRESS:
        title, body = progress_message(goal.name, new_percentage, chooser=chooser)
        effects.append(Notify(
            user_id=goal.user_id,
            milestone=milestone,
            category=GOAL_PROGRESS_TAG,
            title=title,
            body=body,
        ))

    if deposit_amount > 0:
        effects.append(InsertDeposit(
            goal_id=goal.id,
            user_id=goal.user_id,
            amount=deposit_amount,
            deposit_date=today or date.today(),
        ))

    return AmountUpdatePlan(
        goal_id=goal.id,
        target_amount=target,
        old_amount=old_amount,
        new_amount=new_amount,
        deposit_amount=deposit_amount,
        old_percentage=old_percentage,
        new_percentage=new_percentage,
        milestone=milestone,
        effects=effects,
    )


# ────────────────────────────────────────────────────────────────────────────────
# EFFECT EXECUTION
# ────────────────────────────────────────────────────────────────────────────────
async def execute_plan(
    plan: AmountUpdatePlan,
    db: AsyncSession,
    dispatcher: NotificationDispatcher,
) -> AmountUpdateOutcome:
    outcome = AmountUpdateOutcome(plan=plan)

    for effect in plan.effects:
        if isinstance(effect, PersistGoalAmount):
            try:
                await update_goal_amount(effect.goal_id, effect.user_id, effect.amount, db)
            except Exception as e:
                logger.error(f"Error updating savings goal {effect.goal_id}: {str(e)}")
                await db.rollback()
                raise GoalPersistenceError("Failed to update savings goal") from e

        elif isinstance(effect, Notify):
            logger.info(f"Savings goal {plan.goal_id} crossed the {effect.milestone.value} milestone")
            outcome.notification_queued = dispatcher.dispatch(
                effect.user_id,
                effect.category,
                effect.title,
                effect.body,
                status="completed" if effect.milestone is Milestone.ACHIEVED else "info",
            )

        elif isinstance(effect, InsertDeposit):
            try:
                deposit = await create_deposit(
                    effect.user_id,
                    effect.goal_id,
                    effect.amount,
                    effect.deposit_date,
                    db,
                )
            except Exception as e:
                # The goal amount stays committed; the ledger entry is dropped
                logger.error(f"Error recording deposit for savings goal {effect.goal_id}: {str(e)}")
                await db.rollback()
            else:
                outcome.deposit_recorded = True
                outcome.deposit_id = deposit.id

    return outcome


async def apply_amount_update(
    db: AsyncSession,
    user_id: uuid.UUID,
    goal_id: uuid.UUID,
    new_amount: Any,
    dispatcher: NotificationDispatcher,
    today: Optional[date] = None,
) -> Optional[AmountUpdateOutcome]:
    """
    Set a goal's saved total and carry out its side effects.

    Returns None, touching nothing, when the goal is not one of the user's.
    Raises CompletedGoalError or GoalPersistenceError; deposit and
    notification failures are logged and never raised.
    """
    goal = await get_goal_by_id(goal_id, user_id, db)
    if goal is None:
        logger.info(f"Ignoring amount update for unknown savings goal {goal_id}")
        return None

    plan = plan_amount_update(GoalSnapshot.model_validate(goal), new_amount, today=today)
    return await execute_plan(plan, db, dispatcher)


async def delete_savings_goal(db: AsyncSession, user_id: uuid.UUID, goal_id: uuid.UUID) -> bool:
    """
    Delete a goal's deposits, then the goal.

    Returns False when the goal is not one of the user's. A failed deposit
    delete is logged and the goal delete still runs; a failed goal delete
    raises GoalPersistenceError.
    """
    goal = await get_goal_by_id(goal_id, user_id, db)
    if goal is None:
        return False

    try:
        removed = await delete_deposits_for_goal(goal_id, user_id, db)
        logger.info(f"Removed {removed} deposits of savings goal {goal_id}")
    except Exception as e:
        logger.error(f"Error deleting deposits for savings goal {goal_id}: {str(e)}")
        await db.rollback()

    try:
        await delete_goal(goal_id, user_id, db)
    except Exception as e:
        logger.error(f"Error deleting savings goal {goal_id}: {str(e)}")
        await db.rollback()
        raise GoalPersistenceError("Failed to delete savings goal") from e

    return True
