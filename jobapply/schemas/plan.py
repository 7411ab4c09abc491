from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from jobapply.models.plan import PlanType, BillingPeriod


class PlanBase(BaseModel):
    sku: str = Field(..., description="Unique stock keeping unit")
    name: str
    description: str = ""
    credits: int = Field(0, ge=0, description="Credits granted per purchase or billing cycle")
    price: Decimal = Field(..., ge=0, description="Price in dollars")
    type: PlanType = PlanType.ONE_TIME
    billing_period: Optional[BillingPeriod] = None
    stripe_product_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    active: bool = True

class PlanCreate(PlanBase):
    pass

class PlanUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    credits: Optional[int] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    type: Optional[PlanType] = None
    billing_period: Optional[BillingPeriod] = None
    stripe_product_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    active: Optional[bool] = None

class PlanResponse(PlanBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
