import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from jobapply.crud.promo_code import promo_code_crud
from jobapply.models.promo_code import PromoCode, DiscountType
from jobapply.schemas.promo_code import PromoCodeValidation, PromoCodeResponse

logger = logging.getLogger(__name__)


class PromoCodeService:
    """Validates promo codes and prices plans with them"""

    async def validate_promo_code(
        self,
        db: AsyncSession,
        code: str,
        now: Optional[datetime] = None
    ) -> PromoCodeValidation:
        promo_code = await promo_code_crud.get_by_code(db, code)

        if not promo_code:
            return PromoCodeValidation(valid=False, error="Promo code not found")

        if not promo_code.active:
            return PromoCodeValidation(valid=False, error="Promo code is no longer active")

        if promo_code.expires_at and promo_code.expires_at < (now or datetime.utcnow()):
            return PromoCodeValidation(valid=False, error="Promo code has expired")

        if promo_code.max_uses is not None and promo_code.current_uses >= promo_code.max_uses:
            return PromoCodeValidation(valid=False, error="Promo code usage limit reached")

        return PromoCodeValidation(
            valid=True,
            promo_code=PromoCodeResponse.model_validate(promo_code)
        )

    @staticmethod
    def apply_discount(price: Decimal, promo_code: PromoCode) -> Decimal:
        """Discounted price, never below zero"""
        price = Decimal(price)
        value = Decimal(promo_code.discount_value)

        if promo_code.discount_type == DiscountType.PERCENTAGE:
            discounted = price * (Decimal(1) - value / Decimal(100))
        else:
            discounted = price - value

        return max(Decimal("0.00"), discounted).quantize(Decimal("0.01"))


# Create a singleton instance
promo_code_service = PromoCodeService()
