from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from jobapply.models.promo_code import DiscountType


class PromoCodeBase(BaseModel):
    code: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_-]+$")
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0)
    max_uses: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None
    active: bool = True

class PromoCodeCreate(PromoCodeBase):
    pass

class PromoCodeUpdate(BaseModel):
    description: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(None, gt=0)
    max_uses: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None
    active: Optional[bool] = None

class PromoCodeResponse(PromoCodeBase):
    id: UUID
    current_uses: int
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True

class ValidatePromoCodeRequest(BaseModel):
    code: str

class PromoCodeValidation(BaseModel):
    valid: bool
    promo_code: Optional[PromoCodeResponse] = None
    error: Optional[str] = None
