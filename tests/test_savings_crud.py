import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import NoResultFound

from app.crud.savings_deposit import create_deposit, get_deposits_for_user_in_range, sum_deposits_for_user
from app.crud.savings_goal import mark_achieved_goals, update_goal_amount
from app.models.savings_goal import SavingsGoal


async def test_update_goal_amount_requires_existing_row(db, user):
    with pytest.raises(NoResultFound):
        await update_goal_amount(uuid.uuid4(), user.id, Decimal("10"), db)


async def test_open_ended_deposit_ranges(db, user, make_goal):
    goal = await make_goal(1000)
    await create_deposit(user.id, goal.id, Decimal("10"), date(2026, 1, 5), db)
    await create_deposit(user.id, goal.id, Decimal("20"), date(2026, 6, 5), db)

    assert len(await get_deposits_for_user_in_range(user.id, db)) == 2
    assert len(await get_deposits_for_user_in_range(user.id, db, start_date=date(2026, 3, 1))) == 1
    assert len(await get_deposits_for_user_in_range(user.id, db, end_date=date(2026, 3, 1))) == 1
    assert await sum_deposits_for_user(user.id, date(2026, 6, 1), date(2026, 6, 30), db) == Decimal("20")
    assert await sum_deposits_for_user(user.id, date(2025, 1, 1), date(2025, 1, 31), db) == Decimal("0")


async def test_sweep_flags_only_goals_at_target(db, session_factory, make_goal):
    reached = await make_goal(500, current=500, name="Reached")
    over = await make_goal(500, current=650, name="Over")
    short = await make_goal(500, current=499, name="Short")

    assert await mark_achieved_goals(db) == 2
    assert await mark_achieved_goals(db) == 0

    async with session_factory() as session:
        assert (await session.get(SavingsGoal, reached.id)).is_achieved is True
        assert (await session.get(SavingsGoal, over.id)).is_achieved is True
        assert (await session.get(SavingsGoal, short.id)).is_achieved is False
