from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union, Tuple
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import Select, select, func
from jobapply.models.base import Base
from jobapply.core.exceptions import NotFoundError

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)

class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Async repository for a single model.

    Reads skip soft-deleted rows. Write helpers commit by default; pass
    commit=False to only flush, leaving the caller to commit (or roll back)
    a larger unit of work.
    """

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def _live(self) -> Select:
        return select(self.model).where(self.model.is_deleted == False)

    def _column(self, field: str):
        if not hasattr(self.model, field):
            raise ValueError(f"Field '{field}' does not exist on model {self.model.__name__}")
        return getattr(self.model, field)

    async def _persist(self, db: AsyncSession, db_obj: ModelType, commit: bool) -> ModelType:
        db.add(db_obj)
        if commit:
            await db.commit()
            await db.refresh(db_obj)
        else:
            await db.flush()
        return db_obj

    async def get(self, db: AsyncSession, id: Any, *, raise_if_not_found: bool = True) -> Optional[ModelType]:
        """Get a single record by ID"""
        result = await db.execute(self._live().where(self.model.id == id))
        obj = result.scalar_one_or_none()

        if raise_if_not_found and obj is None:
            raise NotFoundError(f"{self.model.__name__}")

        return obj

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        order_desc: bool = True
    ) -> Tuple[List[ModelType], int]:
        """Page through records matching equality filters. Returns (items, total)."""
        query = self._live()
        for field, value in (filters or {}).items():
            query = query.where(self._column(field) == value)

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()

        order_field = self._column(order_by) if order_by else self.model.created_at
        query = query.order_by(order_field.desc() if order_desc else order_field.asc())

        result = await db.execute(query.offset(skip).limit(limit))
        return result.scalars().all(), total

    async def get_by_field(self, db: AsyncSession, *, field: str, value: Any) -> Optional[ModelType]:
        """First record whose `field` equals `value`"""
        result = await db.execute(self._live().where(self._column(field) == value).limit(1))
        return result.scalar_one_or_none()

    async def exists_by_field(self, db: AsyncSession, *, field: str, value: Any) -> bool:
        return await self.get_by_field(db, field=field, value=value) is not None

    async def create(self, db: AsyncSession, *, obj_in: CreateSchemaType, commit: bool = True) -> ModelType:
        # model_dump() keeps datetime and Decimal values as Python types
        return await self._persist(db, self.model(**obj_in.model_dump(exclude_unset=True)), commit)

    async def create_with_extra(
        self,
        db: AsyncSession,
        *,
        obj_in: CreateSchemaType,
        extra_data: Dict[str, Any],
        commit: bool = True
    ) -> ModelType:
        """Create a record with server-side fields the schema does not carry"""
        data = {**obj_in.model_dump(exclude_unset=True), **extra_data}
        return await self._persist(db, self.model(**data), commit)

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        commit: bool = True
    ) -> ModelType:
        update_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        return await self._persist(db, db_obj, commit)

    async def update_by_id(
        self,
        db: AsyncSession,
        *,
        id: Any,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]],
        raise_if_not_found: bool = True,
        commit: bool = True
    ) -> Optional[ModelType]:
        db_obj = await self.get(db, id=id, raise_if_not_found=raise_if_not_found)
        if db_obj is None:
            return None
        return await self.update(db, db_obj=db_obj, obj_in=obj_in, commit=commit)

    async def soft_delete(self, db: AsyncSession, *, id: Any, raise_if_not_found: bool = True) -> bool:
        """Hide a record from every read without removing the row"""
        db_obj = await self.get(db, id=id, raise_if_not_found=raise_if_not_found)
        if db_obj is None:
            return False
        await self.update(db, db_obj=db_obj, obj_in={"is_deleted": True})
        return True
