import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch, AsyncMock

from jobapply.models import Transaction, TransactionType, TransactionStatus, UserPlan, UserPlanStatus
from jobapply.services.stripe_service import stripe_service

from tests.conftest import (
    USER_ID,
    create_plan,
    create_subscription_plan,
    create_subscription,
    create_user_plan,
    fetch_all,
    make_token,
)


async def subscribed_user(session, **user_plan_overrides):
    plan = await create_subscription_plan(session)
    subscription = await create_subscription(session, plan)
    user_plan = await create_user_plan(session, plan, subscription_id=subscription.id, **user_plan_overrides)
    return plan, subscription, user_plan


@pytest.mark.asyncio
async def test_subscription_details(client, db_session, user_headers):
    plan, subscription, user_plan = await subscribed_user(db_session)

    response = await client.get("/api/subscription/details", headers=user_headers)

    assert response.status_code == 200
    [details] = response.json()
    assert details["stripe_subscription_id"] == "sub_123"
    assert details["plan"]["sku"] == plan.sku
    assert details["user_plan"]["id"] == str(user_plan.id)


@pytest.mark.asyncio
async def test_cancel_at_period_end_goes_through_stripe(client, db_session, session_maker, user_headers):
    _, _, user_plan = await subscribed_user(db_session)
    cancel = AsyncMock(return_value={
        "success": True,
        "subscription": SimpleNamespace(status="active", cancel_at_period_end=True)
    })

    with patch.object(stripe_service, "cancel_subscription", new=cancel):
        response = await client.post(
            "/api/subscription/cancel",
            json={"user_plan_id": str(user_plan.id), "at_period_end": True},
            headers=user_headers
        )

    assert response.status_code == 200
    assert response.json()["cancel_at_period_end"] is True
    cancel.assert_awaited_once_with("sub_123", at_period_end=True)

    # Local state waits for the webhook
    [row] = await fetch_all(session_maker, UserPlan, id=user_plan.id)
    assert row.status == UserPlanStatus.ACTIVE


@pytest.mark.asyncio
async def test_cancel_other_users_plan_is_not_found(client, db_session):
    _, _, user_plan = await subscribed_user(db_session)
    cancel = AsyncMock()

    with patch.object(stripe_service, "cancel_subscription", new=cancel):
        response = await client.post(
            "/api/subscription/cancel",
            json={"user_plan_id": str(user_plan.id)},
            headers={"Authorization": f"Bearer {make_token('intruder')}"}
        )

    assert response.status_code == 404
    cancel.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_one_time_plan_is_rejected(client, db_session, user_headers):
    plan = await create_plan(db_session)
    user_plan = await create_user_plan(db_session, plan)

    response = await client.post(
        "/api/subscription/cancel",
        json={"user_plan_id": str(user_plan.id)},
        headers=user_headers
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Not a subscription"


@pytest.mark.asyncio
async def test_reactivate(client, db_session, user_headers):
    _, _, user_plan = await subscribed_user(db_session)
    reactivate = AsyncMock(return_value={
        "success": True,
        "subscription": SimpleNamespace(status="active", cancel_at_period_end=False)
    })

    with patch.object(stripe_service, "reactivate_subscription", new=reactivate):
        response = await client.post(
            "/api/subscription/reactivate",
            json={"user_plan_id": str(user_plan.id)},
            headers=user_headers
        )

    assert response.status_code == 200
    assert response.json()["cancel_at_period_end"] is False
    reactivate.assert_awaited_once_with("sub_123")


@pytest.mark.asyncio
async def test_stripe_error_on_cancel_is_reported(client, db_session, user_headers):
    _, _, user_plan = await subscribed_user(db_session)
    cancel = AsyncMock(return_value={"success": False, "error": "No such subscription"})

    with patch.object(stripe_service, "cancel_subscription", new=cancel):
        response = await client.post(
            "/api/subscription/cancel",
            json={"user_plan_id": str(user_plan.id)},
            headers=user_headers
        )

    assert response.status_code == 500
    assert "No such subscription" in response.json()["detail"]


@pytest.mark.asyncio
async def test_user_plans_include_spent_and_expired_rows(client, db_session, user_headers):
    plan = await create_plan(db_session)
    await create_user_plan(db_session, plan, credits_remaining=0)
    await create_user_plan(db_session, plan, status=UserPlanStatus.EXPIRED)
    await create_user_plan(db_session, plan, credits_remaining=7)

    plans = await client.get("/api/user-plans", headers=user_headers)
    credits = await client.get("/api/credits", headers=user_headers)

    assert len(plans.json()) == 3
    assert credits.json()["total_credits"] == 7


@pytest.mark.asyncio
async def test_transactions_are_scoped_to_user(client, db_session, admin_headers, user_headers):
    for user_id in (USER_ID, "someone-else"):
        db_session.add(Transaction(
            user_id=user_id, type=TransactionType.PURCHASE, status=TransactionStatus.COMPLETED,
            amount=Decimal("29.99"), currency="usd"
        ))
    await db_session.commit()

    mine = await client.get("/api/transactions", headers=user_headers)
    everyone = await client.get("/api/admin/transactions", headers=admin_headers)
    filtered = await client.get("/api/admin/transactions", params={"user_id": "someone-else"}, headers=admin_headers)

    assert [t["user_id"] for t in mine.json()] == [USER_ID]
    assert len(everyone.json()) == 2
    assert [t["user_id"] for t in filtered.json()] == ["someone-else"]


@pytest.mark.asyncio
async def test_admin_sweep(client, db_session, session_maker, admin_headers):
    plan = await create_plan(db_session)
    lapsed = await create_user_plan(db_session, plan, expires_at=datetime.utcnow() - timedelta(days=5))

    response = await client.post("/api/admin/subscriptions/sweep", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["expired_count"] == 1
    [row] = await fetch_all(session_maker, UserPlan, id=lapsed.id)
    assert row.status == UserPlanStatus.EXPIRED


@pytest.mark.asyncio
async def test_admin_lists_subscriptions(client, db_session, admin_headers, user_headers):
    await subscribed_user(db_session)

    response = await client.get("/api/admin/subscriptions", headers=admin_headers)
    forbidden = await client.get("/api/admin/subscriptions", headers=user_headers)

    assert [s["stripe_subscription_id"] for s in response.json()] == ["sub_123"]
    assert forbidden.status_code == 403
