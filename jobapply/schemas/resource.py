from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from jobapply.models.resource import ResourceCategory, PurchaseMethod


class ResourceBase(BaseModel):
    slug: str
    title: str
    description: str = ""
    category: ResourceCategory
    is_paid: bool = False
    price: Optional[Decimal] = Field(None, ge=0)
    credits: Optional[int] = Field(None, ge=1)
    active: bool = True

class ResourceCreate(ResourceBase):
    pass

class ResourceUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[ResourceCategory] = None
    is_paid: Optional[bool] = None
    price: Optional[Decimal] = Field(None, ge=0)
    credits: Optional[int] = Field(None, ge=1)
    active: Optional[bool] = None

class ResourceResponse(ResourceBase):
    id: UUID
    created_at: datetime

    class Config:
        from_attributes = True

class UserResourceCreate(BaseModel):
    user_id: str
    resource_id: UUID
    purchase_method: PurchaseMethod
    credits_spent: Optional[int] = None

class UserResourceResponse(BaseModel):
    id: UUID
    user_id: str
    resource_id: UUID
    purchase_method: PurchaseMethod
    credits_spent: Optional[int] = None
    purchased_at: datetime

    class Config:
        from_attributes = True

class PurchaseResourceRequest(BaseModel):
    purchase_method: str = "credits"
