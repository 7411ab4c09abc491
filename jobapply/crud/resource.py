from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func

from jobapply.crud.base import CRUDBase
from jobapply.models.resource import Resource, UserResource
from jobapply.schemas.resource import ResourceCreate, ResourceUpdate, UserResourceCreate
from pydantic import BaseModel


class CRUDResource(CRUDBase[Resource, ResourceCreate, ResourceUpdate]):
    async def get_active(self, db: AsyncSession) -> List[Resource]:
        result = await db.execute(
            select(self.model)
            .where(and_(self.model.active == True, self.model.is_deleted == False))
            .order_by(self.model.created_at.desc())
        )
        return result.scalars().all()


class CRUDUserResource(CRUDBase[UserResource, UserResourceCreate, BaseModel]):
    async def get_by_user(self, db: AsyncSession, user_id: str) -> List[UserResource]:
        result = await db.execute(
            select(self.model)
            .where(and_(self.model.user_id == user_id, self.model.is_deleted == False))
            .order_by(self.model.purchased_at.desc())
        )
        return result.scalars().all()

    async def has_purchased(self, db: AsyncSession, user_id: str, resource_id) -> bool:
        """Check whether a user already owns a resource"""
        result = await db.execute(
            select(func.count(self.model.id)).where(
                and_(
                    self.model.user_id == user_id,
                    self.model.resource_id == resource_id,
                    self.model.is_deleted == False
                )
            )
        )
        return (result.scalar() or 0) > 0


resource_crud = CRUDResource(Resource)
user_resource_crud = CRUDUserResource(UserResource)
