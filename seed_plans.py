#!/usr/bin/env python3
"""
Seed the plan catalog with the default credit plans
Run with: python seed_plans.py
"""

import asyncio
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

from jobapply.core.database import AsyncSessionLocal, get_session_maker
from jobapply.crud import plan_crud
from jobapply.schemas.plan import PlanCreate

SEED_PLANS = [
    PlanCreate(sku="TRIAL_10", name="Trial", description="Perfect for testing our service", credits=10, price=Decimal("9.00")),
    PlanCreate(sku="APPS_150", name="Professional", description="Perfect for active job seekers", credits=150, price=Decimal("79.00")),
    PlanCreate(sku="APPS_300", name="Premium", description="For serious job hunters", credits=300, price=Decimal("139.00")),
    PlanCreate(sku="APPS_500", name="Professional Plus", description="Maximum application volume", credits=500, price=Decimal("199.00")),
    PlanCreate(sku="APPS_1000", name="Enterprise", description="Unlimited opportunities", credits=1000, price=Decimal("349.00")),
    PlanCreate(sku="CV_RETOUCH", name="CV Enhancement", description="Professional CV review service", credits=0, price=Decimal("39.00")),
]

async def seed_plans():
    print("🌱 Seeding plan catalog...")

    if not AsyncSessionLocal:
        print("❌ Database not configured!")
        print("   Make sure your .env file has DATABASE_URL")
        return

    async with get_session_maker()() as session:
        for plan_in in SEED_PLANS:
            if await plan_crud.get_by_sku(session, plan_in.sku):
                print(f"ℹ️  Plan {plan_in.sku} already exists")
                continue
            await plan_crud.create(session, obj_in=plan_in)
            print(f"✅ Created plan: {plan_in.name} ({plan_in.sku})")

    print("🌱 Done")

if __name__ == "__main__":
    asyncio.run(seed_plans())
