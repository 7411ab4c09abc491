from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_

from jobapply.crud.base import CRUDBase
from jobapply.models.subscription import Subscription
from jobapply.schemas.billing import SubscriptionCreate, SubscriptionUpdate


class CRUDSubscription(CRUDBase[Subscription, SubscriptionCreate, SubscriptionUpdate]):
    async def get_by_stripe_id(self, db: AsyncSession, stripe_subscription_id: str) -> Optional[Subscription]:
        """Get subscription by its Stripe subscription id"""
        return await self.get_by_field(db, field="stripe_subscription_id", value=stripe_subscription_id)

    async def get_by_user(self, db: AsyncSession, user_id: str) -> List[Subscription]:
        """Get all subscriptions for a user, newest first"""
        result = await db.execute(
            select(self.model)
            .where(and_(self.model.user_id == user_id, self.model.is_deleted == False))
            .order_by(self.model.created_at.desc())
        )
        return result.scalars().all()


subscription_crud = CRUDSubscription(Subscription)
