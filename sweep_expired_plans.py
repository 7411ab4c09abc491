#!/usr/bin/env python3
"""
Expire credit plans past their grace period
Run from cron, e.g. hourly: python sweep_expired_plans.py
"""

import asyncio
import logging
import sys
from dotenv import load_dotenv

load_dotenv()

from jobapply.core.database import get_session_maker
from jobapply.services.subscription_service import subscription_service, GRACE_PERIOD_DAYS

logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)

async def sweep() -> int:
    async with get_session_maker()() as session:
        return await subscription_service.check_expired_subscriptions(session)

if __name__ == "__main__":
    print(f"🧹 Expiring plans past the {GRACE_PERIOD_DAYS}-day grace period...")
    try:
        expired = asyncio.run(sweep())
    except Exception as e:
        print(f"❌ Sweep failed: {e}")
        sys.exit(1)
    print(f"✅ Expired {expired} plan(s)")
