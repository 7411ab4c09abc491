import uuid
import pytest
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch, AsyncMock

from jobapply.models import PromoCode, DiscountType, Transaction, UserPlan
from jobapply.services.stripe_service import stripe_service, to_cents, from_cents

from tests.conftest import (
    USER_ID,
    create_plan,
    create_subscription_plan,
    create_subscription,
    fetch_all,
    make_token,
    stripe_subscription_payload,
)


def stripe_checkout_mocks(session_id: str = "cs_test_1"):
    customer = AsyncMock(return_value={"success": True, "customer": SimpleNamespace(id="cus_123")})
    session = AsyncMock(return_value={
        "success": True,
        "session": SimpleNamespace(id=session_id),
        "checkout_url": f"https://checkout.stripe.com/pay/{session_id}"
    })
    return customer, session


def test_cents_conversion():
    assert to_cents(Decimal("29.99")) == 2999
    assert to_cents(Decimal("0.005")) == 1
    assert from_cents(1900) == Decimal("19.00")
    assert from_cents(None) == Decimal("0.00")


@pytest.mark.asyncio
async def test_create_checkout_session(client, db_session, user_headers):
    plan = await create_plan(db_session)
    customer, session = stripe_checkout_mocks()

    with patch.object(stripe_service, "create_or_get_customer", new=customer), \
            patch.object(stripe_service, "create_checkout_session", new=session):
        response = await client.post(
            "/api/payment/create-checkout-session",
            json={"plan_id": str(plan.id)},
            headers=user_headers
        )

    assert response.status_code == 200
    body = response.json()
    assert body["session_id"] == "cs_test_1"
    assert body["url"].endswith("cs_test_1")

    kwargs = session.call_args.kwargs
    assert kwargs["user_id"] == USER_ID
    assert kwargs["plan_id"] == str(plan.id)
    assert kwargs["amount"] == Decimal("29.99")
    assert kwargs["is_subscription"] is False
    assert kwargs["promo_code_id"] is None


@pytest.mark.asyncio
async def test_checkout_applies_valid_promo_code(client, db_session, user_headers):
    plan = await create_plan(db_session)
    promo = PromoCode(
        code="SAVE10", discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("10"),
        current_uses=0, active=True, created_by="admin-1"
    )
    db_session.add(promo)
    await db_session.commit()
    customer, session = stripe_checkout_mocks()

    with patch.object(stripe_service, "create_or_get_customer", new=customer), \
            patch.object(stripe_service, "create_checkout_session", new=session):
        response = await client.post(
            "/api/payment/create-checkout-session",
            json={"plan_id": str(plan.id), "promo_code": "save10"},
            headers=user_headers
        )

    assert response.status_code == 200
    kwargs = session.call_args.kwargs
    assert kwargs["amount"] == Decimal("26.99")
    assert kwargs["promo_code_id"] == str(promo.id)
    assert kwargs["discount_applied"] == Decimal("3.00")


@pytest.mark.asyncio
async def test_checkout_ignores_unknown_promo_code(client, db_session, user_headers):
    plan = await create_plan(db_session)
    customer, session = stripe_checkout_mocks()

    with patch.object(stripe_service, "create_or_get_customer", new=customer), \
            patch.object(stripe_service, "create_checkout_session", new=session):
        response = await client.post(
            "/api/payment/create-checkout-session",
            json={"plan_id": str(plan.id), "promo_code": "NOPE"},
            headers=user_headers
        )

    assert response.status_code == 200
    assert session.call_args.kwargs["amount"] == Decimal("29.99")


@pytest.mark.asyncio
async def test_checkout_for_inactive_plan_is_not_found(client, db_session, user_headers):
    plan = await create_plan(db_session, active=False)

    response = await client.post(
        "/api/payment/create-checkout-session",
        json={"plan_id": str(plan.id)},
        headers=user_headers
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_checkout_reports_stripe_failure(client, db_session, user_headers):
    plan = await create_plan(db_session)
    customer, _ = stripe_checkout_mocks()
    failing = AsyncMock(return_value={"success": False, "error": "card_declined"})

    with patch.object(stripe_service, "create_or_get_customer", new=customer), \
            patch.object(stripe_service, "create_checkout_session", new=failing):
        response = await client.post(
            "/api/payment/create-checkout-session",
            json={"plan_id": str(plan.id)},
            headers=user_headers
        )

    assert response.status_code == 500
    assert "card_declined" in response.json()["detail"]


@pytest.mark.asyncio
async def test_checkout_requires_authentication(client):
    response = await client.post("/api/payment/create-checkout-session", json={"plan_id": str(uuid.uuid4())})

    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_checkout_rejects_bad_token(client):
    response = await client.post(
        "/api/payment/create-checkout-session",
        json={"plan_id": str(uuid.uuid4())},
        headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401


def paid_session(plan, user_id=USER_ID, payment_status="paid"):
    return {
        "id": "cs_complete_1",
        "amount_total": 2999,
        "currency": "usd",
        "customer": "cus_123",
        "payment_intent": "pi_1",
        "payment_status": payment_status,
        "subscription": None,
        "metadata": {"userId": user_id, "planId": str(plan.id), "promoCodeId": ""},
    }


@pytest.mark.asyncio
async def test_complete_checkout_applies_session_once(client, db_session, session_maker, user_headers):
    plan = await create_plan(db_session)
    retrieve = AsyncMock(return_value=paid_session(plan))

    with patch.object(stripe_service, "retrieve_checkout_session", new=retrieve):
        first = await client.post("/api/payment/complete-checkout", json={"session_id": "cs_complete_1"}, headers=user_headers)
        second = await client.post("/api/payment/complete-checkout", json={"session_id": "cs_complete_1"}, headers=user_headers)

    assert first.status_code == 200
    assert first.json()["applied"] is True
    assert second.status_code == 200
    assert second.json()["applied"] is False

    [user_plan] = await fetch_all(session_maker, UserPlan, user_id=USER_ID)
    assert user_plan.credits_remaining == 50
    assert len(await fetch_all(session_maker, Transaction)) == 1


@pytest.mark.asyncio
async def test_complete_checkout_rejects_other_users_session(client, db_session, session_maker):
    plan = await create_plan(db_session)
    retrieve = AsyncMock(return_value=paid_session(plan, user_id="someone-else"))

    with patch.object(stripe_service, "retrieve_checkout_session", new=retrieve):
        response = await client.post(
            "/api/payment/complete-checkout",
            json={"session_id": "cs_complete_1"},
            headers={"Authorization": f"Bearer {make_token()}"}
        )

    assert response.status_code == 403
    assert await fetch_all(session_maker, UserPlan) == []


@pytest.mark.asyncio
async def test_complete_checkout_requires_paid_session(client, db_session, session_maker, user_headers):
    plan = await create_plan(db_session)
    retrieve = AsyncMock(return_value=paid_session(plan, payment_status="unpaid"))

    with patch.object(stripe_service, "retrieve_checkout_session", new=retrieve):
        response = await client.post("/api/payment/complete-checkout", json={"session_id": "cs_complete_1"}, headers=user_headers)

    assert response.status_code == 400
    assert await fetch_all(session_maker, UserPlan) == []


@pytest.mark.asyncio
async def test_complete_checkout_conflict_on_other_row_is_an_error(client, db_session, session_maker, user_headers):
    plan = await create_subscription_plan(db_session)
    # Stripe subscription already recorded for a different user
    await create_subscription(db_session, plan, user_id="someone-else")
    retrieve = AsyncMock(return_value={**paid_session(plan), "subscription": "sub_123", "amount_total": 1900})

    with patch.object(stripe_service, "retrieve_checkout_session", new=retrieve), \
            patch.object(stripe_service, "get_subscription", new=AsyncMock(return_value=stripe_subscription_payload())):
        response = await client.post("/api/payment/complete-checkout", json={"session_id": "cs_complete_1"}, headers=user_headers)

    assert response.status_code == 500
    assert await fetch_all(session_maker, Transaction, user_id=USER_ID) == []
    assert await fetch_all(session_maker, UserPlan, user_id=USER_ID) == []
