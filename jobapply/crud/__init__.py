# CRUD operations package

from .plan import plan_crud
from .subscription import subscription_crud
from .user_plan import user_plan_crud
from .transaction import transaction_crud
from .promo_code import promo_code_crud
from .stripe_webhook import stripe_webhook_crud
from .resource import resource_crud, user_resource_crud
from .application_batch import application_batch_crud

__all__ = [
    'plan_crud',
    'subscription_crud',
    'user_plan_crud',
    'transaction_crud',
    'promo_code_crud',
    'stripe_webhook_crud',
    'resource_crud',
    'user_resource_crud',
    'application_batch_crud'
]
