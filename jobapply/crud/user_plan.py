from typing import List
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, update

from jobapply.crud.base import CRUDBase
from jobapply.models.user_plan import UserPlan, UserPlanStatus
from jobapply.schemas.billing import UserPlanCreate, UserPlanUpdate


class CRUDUserPlan(CRUDBase[UserPlan, UserPlanCreate, UserPlanUpdate]):
    async def get_by_user(self, db: AsyncSession, user_id: str) -> List[UserPlan]:
        """Get every ledger row of a user, newest purchase first"""
        result = await db.execute(
            select(self.model)
            .where(and_(self.model.user_id == user_id, self.model.is_deleted == False))
            .order_by(self.model.purchased_at.desc())
        )
        return result.scalars().all()

    async def get_spendable(self, db: AsyncSession, user_id: str) -> List[UserPlan]:
        """Get active ledger rows with credits left, oldest purchase first"""
        result = await db.execute(
            select(self.model)
            .where(
                and_(
                    self.model.user_id == user_id,
                    self.model.status == UserPlanStatus.ACTIVE,
                    self.model.credits_remaining > 0,
                    self.model.is_deleted == False
                )
            )
            .order_by(self.model.purchased_at.asc(), self.model.id.asc())
        )
        return result.scalars().all()

    async def get_by_subscription_id(self, db: AsyncSession, subscription_id) -> List[UserPlan]:
        """Get ledger rows backed by a subscription"""
        result = await db.execute(
            select(self.model).where(
                and_(self.model.subscription_id == subscription_id, self.model.is_deleted == False)
            )
        )
        return result.scalars().all()

    async def get_expired(self, db: AsyncSession, grace_period_end: datetime) -> List[UserPlan]:
        """Get active ledger rows whose expiry is before the grace cutoff"""
        result = await db.execute(
            select(self.model).where(
                and_(
                    self.model.status == UserPlanStatus.ACTIVE,
                    self.model.expires_at.is_not(None),
                    self.model.expires_at < grace_period_end,
                    self.model.is_deleted == False
                )
            )
        )
        return result.scalars().all()

    async def conditional_deduct(self, db: AsyncSession, user_plan_id, amount: int) -> bool:
        """
        Atomically take `amount` credits from an active row.
        Returns False when the row no longer holds enough credits. Does not commit.
        """
        result = await db.execute(
            update(self.model)
            .where(
                and_(
                    self.model.id == user_plan_id,
                    self.model.status == UserPlanStatus.ACTIVE,
                    self.model.credits_remaining >= amount
                )
            )
            .values(
                credits_remaining=self.model.credits_remaining - amount,
                updated_at=datetime.utcnow()
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


user_plan_crud = CRUDUserPlan(UserPlan)
