from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_

from jobapply.crud.base import CRUDBase
from jobapply.models.plan import Plan
from jobapply.schemas.plan import PlanCreate, PlanUpdate


class CRUDPlan(CRUDBase[Plan, PlanCreate, PlanUpdate]):
    async def get_by_sku(self, db: AsyncSession, sku: str) -> Optional[Plan]:
        """Get plan by SKU"""
        return await self.get_by_field(db, field="sku", value=sku)

    async def get_active_plans(self, db: AsyncSession) -> List[Plan]:
        """Get all purchasable plans, cheapest first"""
        result = await db.execute(
            select(self.model)
            .where(and_(self.model.active == True, self.model.is_deleted == False))
            .order_by(self.model.price.asc())
        )
        return result.scalars().all()


plan_crud = CRUDPlan(Plan)
