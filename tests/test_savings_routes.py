import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select

from app.models.savings_deposit import SavingsDeposit
from app.models.savings_goal import SavingsGoal
from app.utils.savings_progress import COMPLETED_GOAL_MESSAGE


async def test_requires_authentication(client):
    response = await client.get("/api/v1/savings-goals", headers={"Authorization": ""})
    assert response.status_code == 401


async def test_rejects_garbage_token(client):
    response = await client.get("/api/v1/savings-goals", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


async def test_create_goal_defaults_to_zero(client):
    response = await client.post(
        "/api/v1/savings-goals",
        json={"name": "Emergency fund", "target_amount": "5000", "deadline": "2027-06-30"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Emergency fund"
    assert Decimal(body["current_amount"]) == Decimal("0")
    assert body["progress_percentage"] == 0.0
    assert body["status"] == "Not Started"
    assert body["deadline"] == "2027-06-30"


async def test_create_goal_validates_amounts(client):
    response = await client.post("/api/v1/savings-goals", json={"name": "Bad", "target_amount": "0"})
    assert response.status_code == 422

    response = await client.post("/api/v1/savings-goals", json={"name": "", "target_amount": "10"})
    assert response.status_code == 422


async def test_list_goals_newest_first(client, make_goal):
    await make_goal(100, name="Older", created_at=datetime(2026, 1, 1))
    await make_goal(200, name="Newer", created_at=datetime(2026, 3, 1))

    response = await client.get("/api/v1/savings-goals")

    assert response.status_code == 200
    assert [g["name"] for g in response.json()] == ["Newer", "Older"]


async def test_read_goal_clamps_display_progress(client, make_goal):
    goal = await make_goal(1000, current=1250)

    response = await client.get(f"/api/v1/savings-goals/{goal.id}")

    assert response.status_code == 200
    assert response.json()["progress_percentage"] == 100.0
    assert response.json()["status"] == "Goal Achieved"


async def test_read_missing_goal(client):
    response = await client.get(f"/api/v1/savings-goals/{uuid.uuid4()}")
    assert response.status_code == 404


async def test_update_amount_walkthrough(client, dispatcher, session_factory, make_goal):
    goal = await make_goal(1000)
    url = f"/api/v1/savings-goals/{goal.id}/amount"

    first = (await client.patch(url, json={"new_amount": "600"})).json()
    assert first["status"] == "updated"
    assert Decimal(first["deposit_amount"]) == Decimal("600")
    assert first["deposit_recorded"] is True
    assert first["milestone"] is None
    assert first["progress_percentage"] == 60.0

    second = (await client.patch(url, json={"new_amount": "800"})).json()
    assert second["milestone"] == "progress"

    third = (await client.patch(url, json={"new_amount": "1000"})).json()
    assert third["milestone"] == "achieved"
    assert third["progress_percentage"] == 100.0

    rejected = await client.patch(url, json={"new_amount": "1200"})
    assert rejected.status_code == 409
    assert rejected.json()["detail"] == COMPLETED_GOAL_MESSAGE

    assert dispatcher.queue.qsize() == 2

    refreshed = (await client.get(f"/api/v1/savings-goals/{goal.id}")).json()
    assert Decimal(refreshed["current_amount"]) == Decimal("1000")

    deposits = (await client.get(f"/api/v1/savings-goals/{goal.id}/deposits")).json()
    assert sorted(Decimal(d["amount"]) for d in deposits) == [Decimal("200"), Decimal("200"), Decimal("600")]


async def test_update_amount_on_unknown_goal_is_ignored(client, dispatcher):
    goal_id = uuid.uuid4()

    response = await client.patch(f"/api/v1/savings-goals/{goal_id}/amount", json={"new_amount": "10"})

    assert response.status_code == 200
    assert response.json() == {
        "goal_id": str(goal_id),
        "status": "ignored",
        "old_amount": None,
        "new_amount": None,
        "deposit_amount": None,
        "deposit_recorded": False,
        "milestone": None,
        "progress_percentage": None,
    }
    assert dispatcher.queue.empty()


async def test_update_amount_rejects_negative_totals(client, make_goal):
    goal = await make_goal(1000)

    response = await client.patch(f"/api/v1/savings-goals/{goal.id}/amount", json={"new_amount": "-5"})

    assert response.status_code == 422


async def test_decrease_on_completed_goal_is_allowed(client, dispatcher, make_goal):
    goal = await make_goal(1000, current=1000)

    response = await client.patch(f"/api/v1/savings-goals/{goal.id}/amount", json={"new_amount": "900"})

    assert response.status_code == 200
    assert Decimal(response.json()["deposit_amount"]) == Decimal("-100")
    assert response.json()["deposit_recorded"] is False
    assert dispatcher.queue.empty()


async def test_persistence_failure_maps_to_503(client, make_goal, monkeypatch):
    from app.utils import savings_progress

    goal = await make_goal(1000)

    async def failing_update(*args, **kwargs):
        raise RuntimeError("gateway timeout")

    monkeypatch.setattr(savings_progress, "update_goal_amount", failing_update)

    response = await client.patch(f"/api/v1/savings-goals/{goal.id}/amount", json={"new_amount": "100"})

    assert response.status_code == 503
    assert response.json()["detail"] == "Failed to update savings goal"


async def test_delete_goal_and_deposits(client, session_factory, make_goal):
    goal = await make_goal(1000)
    await client.patch(f"/api/v1/savings-goals/{goal.id}/amount", json={"new_amount": "250"})

    response = await client.delete(f"/api/v1/savings-goals/{goal.id}")
    assert response.status_code == 204

    async with session_factory() as session:
        assert await session.get(SavingsGoal, goal.id) is None
        result = await session.execute(
            select(SavingsDeposit).where(SavingsDeposit.savings_goal_id == goal.id)
        )
        assert result.scalars().all() == []

    assert (await client.delete(f"/api/v1/savings-goals/{goal.id}")).status_code == 404


async def test_deposits_in_range_and_summary(client, db, user, make_goal):
    laptop = await make_goal(1000, current=700, name="Laptop")
    trip = await make_goal(500, current=500, name="Trip")
    db.add_all([
        SavingsDeposit(user_id=user.id, savings_goal_id=laptop.id, amount=Decimal("400"), deposit_date=date(2026, 9, 3)),
        SavingsDeposit(user_id=user.id, savings_goal_id=laptop.id, amount=Decimal("300"), deposit_date=date(2026, 10, 2)),
        SavingsDeposit(user_id=user.id, savings_goal_id=trip.id, amount=Decimal("500"), deposit_date=date(2026, 10, 15)),
        SavingsDeposit(user_id=user.id, savings_goal_id=trip.id, amount=Decimal("50"), deposit_date=date(2026, 7, 1)),
    ])
    await db.commit()

    ranged = await client.get(
        "/api/v1/savings-goals/deposits",
        params={"start_date": "2026-09-01", "end_date": "2026-10-31"},
    )
    assert ranged.status_code == 200
    assert len(ranged.json()["deposits"]) == 3
    assert Decimal(ranged.json()["total"]) == Decimal("1200")

    summary = (await client.get("/api/v1/savings-goals/summary", params={"today": "2026-10-19"})).json()
    assert Decimal(summary["total_saved"]) == Decimal("1200")
    assert Decimal(summary["total_target"]) == Decimal("1500")
    assert Decimal(summary["this_month_deposits"]) == Decimal("800")
    assert Decimal(summary["last_month_deposits"]) == Decimal("400")
    assert summary["goal_count"] == 2
    assert summary["achieved_count"] == 1
    assert summary["overall_progress"] == 80.0


async def test_deposit_range_must_be_ordered(client):
    response = await client.get(
        "/api/v1/savings-goals/deposits",
        params={"start_date": "2026-10-31", "end_date": "2026-10-01"},
    )
    assert response.status_code == 400


async def test_notification_feed(client, dispatcher, make_goal):
    goal = await make_goal(1000, current=700, name="Bike")
    await client.patch(f"/api/v1/savings-goals/{goal.id}/amount", json={"new_amount": "1000"})
    await dispatcher.drain()

    assert (await client.get("/api/v1/notification/unread-count")).json() == 1

    feed = (await client.get("/api/v1/notification/")).json()
    assert len(feed) == 1
    assert feed[0]["type"] == "savings-goal"
    assert feed[0]["status"] == "completed"
    assert "Bike" in feed[0]["message"]

    marked = await client.post(f"/api/v1/notification/{feed[0]['id']}/read")
    assert marked.status_code == 200
    assert marked.json()["is_read"] is True
    assert (await client.get("/api/v1/notification/unread-count")).json() == 0
    assert (await client.post("/api/v1/notification/read_all")).json() == 0


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
