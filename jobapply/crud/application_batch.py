from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func

from jobapply.crud.base import CRUDBase
from jobapply.models.application_batch import ApplicationBatch
from jobapply.schemas.application import ApplicationBatchCreate
from pydantic import BaseModel


class CRUDApplicationBatch(CRUDBase[ApplicationBatch, ApplicationBatchCreate, BaseModel]):
    async def get_next_batch_number(self, db: AsyncSession, user_id: str) -> int:
        """Next per-user batch number, starting at 1"""
        result = await db.execute(
            select(func.max(self.model.batch_number)).where(self.model.user_id == user_id)
        )
        return (result.scalar() or 0) + 1

    async def get_by_user(self, db: AsyncSession, user_id: str) -> List[ApplicationBatch]:
        result = await db.execute(
            select(self.model)
            .where(and_(self.model.user_id == user_id, self.model.is_deleted == False))
            .order_by(self.model.batch_number.desc())
        )
        return result.scalars().all()


application_batch_crud = CRUDApplicationBatch(ApplicationBatch)
