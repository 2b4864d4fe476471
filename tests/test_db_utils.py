import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.db_utils import is_connection_error, with_db_retry
from app.models.savings_goal import SavingsGoal


def dropped_connection():
    return OperationalError("SELECT count(*) FROM savings_goals", {}, ConnectionResetError("connection reset"))


def test_connection_errors_are_recognised():
    assert is_connection_error(dropped_connection())
    assert is_connection_error(ConnectionRefusedError())
    assert not is_connection_error(ValueError("bad amount"))


async def test_retry_starts_each_attempt_on_a_clean_session(db):
    open_transaction = []

    @with_db_retry(max_retries=2, retry_delay=0)
    async def count_goals(session):
        open_transaction.append(session.in_transaction())
        result = await session.execute(select(func.count()).select_from(SavingsGoal))
        if len(open_transaction) == 1:
            raise dropped_connection()
        return result.scalar_one()

    assert await count_goals(db) == 0
    assert open_transaction == [False, False]


async def test_retry_finds_session_passed_by_keyword(db):
    open_transaction = []

    @with_db_retry(max_retries=1, retry_delay=0)
    async def flaky(goal_id, db):
        open_transaction.append(db.in_transaction())
        await db.execute(select(SavingsGoal).where(SavingsGoal.name == goal_id))
        if len(open_transaction) == 1:
            raise dropped_connection()
        return "ok"

    assert await flaky("Emergency fund", db=db) == "ok"
    assert open_transaction == [False, False]


async def test_retry_gives_up_after_max_retries(db):
    attempts = []

    @with_db_retry(max_retries=2, retry_delay=0)
    async def always_down(session):
        attempts.append(True)
        raise dropped_connection()

    with pytest.raises(OperationalError):
        await always_down(db)
    assert len(attempts) == 3


async def test_other_errors_are_not_retried(db):
    attempts = []

    @with_db_retry(max_retries=3, retry_delay=0)
    async def duplicate(session):
        attempts.append(True)
        raise IntegrityError("INSERT INTO savings_goals", {}, Exception("duplicate key"))

    with pytest.raises(IntegrityError):
        await duplicate(db)
    assert len(attempts) == 1
