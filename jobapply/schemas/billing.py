from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from jobapply.models.subscription import SubscriptionStatus
from jobapply.models.user_plan import UserPlanStatus
from jobapply.models.transaction import TransactionType, TransactionStatus
from jobapply.schemas.plan import PlanResponse

# Subscription Schemas
class SubscriptionCreate(BaseModel):
    user_id: str
    plan_id: UUID
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: str
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool = False
    amount: Decimal

class SubscriptionUpdate(BaseModel):
    status: Optional[SubscriptionStatus] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: Optional[bool] = None
    canceled_at: Optional[datetime] = None

class SubscriptionResponse(BaseModel):
    id: UUID
    user_id: str
    plan_id: UUID
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: str
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool
    canceled_at: Optional[datetime] = None
    amount: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

# User Plan (ledger row) Schemas
class UserPlanCreate(BaseModel):
    user_id: str
    plan_id: UUID
    subscription_id: Optional[UUID] = None
    credits_remaining: int = Field(..., ge=0)
    status: UserPlanStatus = UserPlanStatus.ACTIVE
    auto_renew: bool = False
    expires_at: Optional[datetime] = None

class UserPlanUpdate(BaseModel):
    credits_remaining: Optional[int] = Field(None, ge=0)
    status: Optional[UserPlanStatus] = None
    auto_renew: Optional[bool] = None
    expires_at: Optional[datetime] = None

class UserPlanResponse(BaseModel):
    id: UUID
    user_id: str
    plan_id: UUID
    subscription_id: Optional[UUID] = None
    credits_remaining: int
    status: UserPlanStatus
    auto_renew: bool
    expires_at: Optional[datetime] = None
    purchased_at: datetime

    class Config:
        from_attributes = True

# Transaction Schemas
class TransactionCreate(BaseModel):
    user_id: str
    plan_id: Optional[UUID] = None
    subscription_id: Optional[UUID] = None
    stripe_payment_intent_id: Optional[str] = None
    stripe_invoice_id: Optional[str] = None
    stripe_checkout_session_id: Optional[str] = None
    type: TransactionType
    status: TransactionStatus
    amount: Decimal
    currency: str = "usd"
    description: Optional[str] = None
    promo_code_id: Optional[UUID] = None
    discount_amount: Optional[Decimal] = None

class TransactionUpdate(BaseModel):
    status: Optional[TransactionStatus] = None

class TransactionResponse(BaseModel):
    id: UUID
    user_id: str
    plan_id: Optional[UUID] = None
    subscription_id: Optional[UUID] = None
    stripe_payment_intent_id: Optional[str] = None
    stripe_invoice_id: Optional[str] = None
    type: TransactionType
    status: TransactionStatus
    amount: Decimal
    currency: str
    description: Optional[str] = None
    promo_code_id: Optional[UUID] = None
    discount_amount: Optional[Decimal] = None
    created_at: datetime

    class Config:
        from_attributes = True

# Request/Response Schemas for API endpoints
class CreateCheckoutRequest(BaseModel):
    plan_id: UUID
    promo_code: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None

class CheckoutResponse(BaseModel):
    success: bool
    session_id: str
    url: Optional[str] = None

class CompleteCheckoutRequest(BaseModel):
    session_id: str

class CompleteCheckoutResponse(BaseModel):
    success: bool
    session_id: str
    applied: bool
    message: str

class SubscriptionActionRequest(BaseModel):
    user_plan_id: UUID
    at_period_end: bool = False

class ReactivateSubscriptionRequest(BaseModel):
    user_plan_id: UUID

class SubscriptionActionResponse(BaseModel):
    success: bool
    message: str
    stripe_subscription_id: str
    stripe_status: Optional[str] = None
    cancel_at_period_end: Optional[bool] = None

class SubscriptionDetails(SubscriptionResponse):
    """Subscription with its plan and backing ledger row"""
    plan: Optional[PlanResponse] = None
    user_plan: Optional[UserPlanResponse] = None

class CreditAllocation(BaseModel):
    user_plan_id: UUID
    credits_deducted: int
    credits_remaining: int

class DeductionResult(BaseModel):
    user_id: str
    credits_deducted: int
    allocations: List[CreditAllocation]

class CreditBalanceResponse(BaseModel):
    user_id: str
    total_credits: int
    user_plans: List[UserPlanResponse]

class WebhookResponse(BaseModel):
    success: bool
    received: bool = True
    event_id: Optional[str] = None
    event_type: Optional[str] = None
    action: Optional[str] = None
    duplicate: bool = False

class SweepResponse(BaseModel):
    success: bool
    expired_count: int
