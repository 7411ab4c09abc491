# Database models package

from .base import Base
from .plan import Plan, PlanType, BillingPeriod
from .subscription import Subscription, SubscriptionStatus
from .user_plan import UserPlan, UserPlanStatus
from .transaction import Transaction, TransactionType, TransactionStatus
from .promo_code import PromoCode, DiscountType
from .stripe_webhook import StripeWebhook
from .resource import Resource, ResourceCategory, UserResource, PurchaseMethod
from .application_batch import ApplicationBatch

__all__ = [
    'Base',
    'Plan',
    'PlanType',
    'BillingPeriod',
    'Subscription',
    'SubscriptionStatus',
    'UserPlan',
    'UserPlanStatus',
    'Transaction',
    'TransactionType',
    'TransactionStatus',
    'PromoCode',
    'DiscountType',
    'StripeWebhook',
    'Resource',
    'ResourceCategory',
    'UserResource',
    'PurchaseMethod',
    'ApplicationBatch'
]
