from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from pydantic import BaseModel

from jobapply.crud.base import CRUDBase
from jobapply.models.stripe_webhook import StripeWebhook


class StripeWebhookCreate(BaseModel):
    event_id: str
    event_type: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    # action and webhook_timestamp are set by the handler when saving


class CRUDStripeWebhook(CRUDBase[StripeWebhook, StripeWebhookCreate, BaseModel]):
    async def get_by_event_id(self, db: AsyncSession, event_id: str) -> Optional[StripeWebhook]:
        return await self.get_by_field(db, field="event_id", value=event_id)


stripe_webhook_crud = CRUDStripeWebhook(StripeWebhook)
