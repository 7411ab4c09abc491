import pytest
from decimal import Decimal

from jobapply.models import Plan

from tests.conftest import create_plan, create_subscription_plan, fetch_all


@pytest.mark.asyncio
async def test_public_catalog_lists_active_plans_cheapest_first(client, db_session):
    await create_plan(db_session, sku="APPS_300", price=Decimal("99.00"), credits=300)
    await create_plan(db_session, sku="TRIAL_10", price=Decimal("0.00"), credits=10)
    await create_plan(db_session, sku="OLD", price=Decimal("5.00"), active=False)

    response = await client.get("/api/plans")

    assert response.status_code == 200
    assert [p["sku"] for p in response.json()] == ["TRIAL_10", "APPS_300"]


@pytest.mark.asyncio
async def test_admin_creates_plan(client, admin_headers):
    payload = {"sku": "APPS_150", "name": "150 Applications", "credits": 150, "price": "59.00"}

    response = await client.post("/api/admin/plans", json=payload, headers=admin_headers)
    duplicate = await client.post("/api/admin/plans", json=payload, headers=admin_headers)

    assert response.status_code == 201
    assert response.json()["type"] == "one_time"
    assert duplicate.status_code == 400


@pytest.mark.asyncio
async def test_subscription_plan_needs_billing_period(client, admin_headers):
    payload = {"sku": "MONTHLY", "name": "Monthly", "credits": 20, "price": "19.00", "type": "subscription"}

    response = await client.post("/api/admin/plans", json=payload, headers=admin_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_cannot_drop_billing_period(client, db_session, admin_headers):
    plan = await create_subscription_plan(db_session)

    response = await client.put(f"/api/admin/plans/{plan.id}", json={"billing_period": None}, headers=admin_headers)
    renamed = await client.put(f"/api/admin/plans/{plan.id}", json={"name": "Monthly Pro"}, headers=admin_headers)

    assert response.status_code == 400
    assert renamed.status_code == 200
    assert renamed.json()["billing_period"] == "monthly"


@pytest.mark.asyncio
async def test_delete_deactivates_plan(client, db_session, session_maker, admin_headers):
    plan = await create_plan(db_session)

    response = await client.delete(f"/api/admin/plans/{plan.id}", headers=admin_headers)

    assert response.status_code == 200
    [stored] = await fetch_all(session_maker, Plan, id=plan.id)
    assert stored.active is False
    assert (await client.get("/api/plans")).json() == []


@pytest.mark.asyncio
async def test_admin_plan_routes_require_admin(client, user_headers):
    response = await client.get("/api/admin/plans", headers=user_headers)

    assert response.status_code == 403
