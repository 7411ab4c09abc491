from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_

from jobapply.crud.base import CRUDBase
from jobapply.models.transaction import Transaction
from jobapply.schemas.billing import TransactionCreate, TransactionUpdate


class CRUDTransaction(CRUDBase[Transaction, TransactionCreate, TransactionUpdate]):
    async def get_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        skip: int = 0,
        limit: int = 50
    ) -> List[Transaction]:
        """Get a user's transactions, newest first"""
        result = await db.execute(
            select(self.model)
            .where(and_(self.model.user_id == user_id, self.model.is_deleted == False))
            .order_by(self.model.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return result.scalars().all()


transaction_crud = CRUDTransaction(Transaction)
