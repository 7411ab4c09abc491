from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update

from jobapply.crud.base import CRUDBase
from jobapply.models.promo_code import PromoCode
from jobapply.schemas.promo_code import PromoCodeCreate, PromoCodeUpdate


class CRUDPromoCode(CRUDBase[PromoCode, PromoCodeCreate, PromoCodeUpdate]):
    async def get_by_code(self, db: AsyncSession, code: str) -> Optional[PromoCode]:
        """Get promo code by code (case-insensitive, codes are stored upper-case)"""
        return await self.get_by_field(db, field="code", value=code.strip().upper())

    async def increment_usage(self, db: AsyncSession, promo_code_id, *, commit: bool = True) -> bool:
        """Atomically add one to current_uses"""
        result = await db.execute(
            update(self.model)
            .where(self.model.id == promo_code_id)
            .values(current_uses=self.model.current_uses + 1)
            .execution_options(synchronize_session=False)
        )
        if commit:
            await db.commit()
        return result.rowcount > 0


promo_code_crud = CRUDPromoCode(PromoCode)
