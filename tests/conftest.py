import os

# Settings are read at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = ""
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = ""

import json
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from jose import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from jobapply.core.config import settings
from jobapply.core.database import get_db
from jobapply.main import app
from jobapply.models import (
    Base,
    Plan,
    PlanType,
    BillingPeriod,
    Subscription,
    SubscriptionStatus,
    UserPlan,
    UserPlanStatus,
)

USER_ID = "user-1"
ADMIN_ID = "admin-1"


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "ledger.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.pop(get_db, None)


def make_token(user_id: str = USER_ID, role: str = "user", email: str = None) -> str:
    return jwt.encode(
        {"sub": user_id, "email": email or f"{user_id}@example.com", "role": role},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token(ADMIN_ID, role='admin')}"}


async def create_plan(session, **overrides) -> Plan:
    values = {
        "sku": "APPS_50",
        "name": "Starter",
        "description": "50 applications",
        "credits": 50,
        "price": Decimal("29.99"),
        "type": PlanType.ONE_TIME,
        "active": True,
    }
    values.update(overrides)
    plan = Plan(**values)
    session.add(plan)
    await session.commit()
    return plan


async def create_subscription_plan(session, **overrides) -> Plan:
    values = {
        "sku": "MONTHLY_20",
        "name": "Monthly",
        "credits": 20,
        "price": Decimal("19.00"),
        "type": PlanType.SUBSCRIPTION,
        "billing_period": BillingPeriod.MONTHLY,
    }
    values.update(overrides)
    return await create_plan(session, **values)


async def create_user_plan(session, plan: Plan, **overrides) -> UserPlan:
    values = {
        "user_id": USER_ID,
        "plan_id": plan.id,
        "credits_remaining": plan.credits,
        "status": UserPlanStatus.ACTIVE,
        "auto_renew": False,
        "expires_at": None,
        "purchased_at": datetime.utcnow(),
    }
    values.update(overrides)
    user_plan = UserPlan(**values)
    session.add(user_plan)
    await session.commit()
    return user_plan


async def create_subscription(session, plan: Plan, **overrides) -> Subscription:
    now = datetime.utcnow()
    values = {
        "user_id": USER_ID,
        "plan_id": plan.id,
        "stripe_subscription_id": "sub_123",
        "stripe_customer_id": "cus_123",
        "status": SubscriptionStatus.ACTIVE,
        "current_period_start": now - timedelta(days=30),
        "current_period_end": now,
        "cancel_at_period_end": False,
        "amount": plan.price,
    }
    values.update(overrides)
    subscription = Subscription(**values)
    session.add(subscription)
    await session.commit()
    return subscription


async def fetch_all(session_maker, model, **filters):
    """Read rows through a fresh session so nothing comes from a stale identity map"""
    async with session_maker() as session:
        query = select(model)
        for field, value in filters.items():
            query = query.where(getattr(model, field) == value)
        result = await session.execute(query)
        return result.scalars().all()


def webhook_body(event_type: str, obj: dict, event_id: str = "evt_1") -> bytes:
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode()


def stripe_subscription_payload(
    subscription_id: str = "sub_123",
    status: str = "active",
    period_start: datetime = None,
    period_end: datetime = None,
    cancel_at_period_end: bool = False,
) -> dict:
    period_start = period_start or datetime(2026, 1, 1)
    period_end = period_end or datetime(2026, 2, 1)
    return {
        "id": subscription_id,
        "object": "subscription",
        "customer": "cus_123",
        "status": status,
        "cancel_at_period_end": cancel_at_period_end,
        "current_period_start": int((period_start - datetime(1970, 1, 1)).total_seconds()),
        "current_period_end": int((period_end - datetime(1970, 1, 1)).total_seconds()),
    }
