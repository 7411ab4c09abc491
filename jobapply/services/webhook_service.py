import logging
from typing import Optional, Dict, Any, Tuple
from datetime import datetime
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from jobapply.core.exceptions import WebhookPayloadError
from jobapply.crud.stripe_webhook import stripe_webhook_crud, StripeWebhookCreate
from jobapply.schemas.billing import WebhookResponse
from jobapply.services.stripe_service import (
    stripe_service,
    from_timestamp,
    get_invoice_subscription_id,
    stripe_object_id
)
from jobapply.services.subscription_service import subscription_service

logger = logging.getLogger(__name__)


class WebhookService:
    """Verifies Stripe events and applies each one at most once"""

    def __init__(self):
        self._handlers = {
            "checkout.session.completed": ("checkout_completed", self._on_checkout_completed),
            "customer.subscription.updated": ("subscription_updated", self._on_subscription_updated),
            "customer.subscription.deleted": ("subscription_cancelled", self._on_subscription_deleted),
            "invoice.payment_succeeded": ("payment_succeeded", self._on_payment_succeeded),
            "invoice.payment_failed": ("payment_failed", self._on_payment_failed),
        }

    @staticmethod
    def _extract_ids(event_type: str, obj: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        """(customer id, subscription id) referenced by an event object"""
        customer_id = stripe_object_id(obj.get("customer"))
        if event_type.startswith("customer.subscription."):
            subscription_id = obj.get("id")
        elif event_type.startswith("invoice."):
            subscription_id = get_invoice_subscription_id(obj)
        else:
            subscription_id = stripe_object_id(obj.get("subscription"))
        return customer_id, subscription_id

    async def _on_checkout_completed(self, db: AsyncSession, obj: Dict[str, Any]) -> bool:
        return await subscription_service.handle_checkout_session_completed(db, obj)

    async def _on_subscription_updated(self, db: AsyncSession, obj: Dict[str, Any]) -> bool:
        return await subscription_service.handle_subscription_updated(db, obj)

    async def _on_subscription_deleted(self, db: AsyncSession, obj: Dict[str, Any]) -> bool:
        return await subscription_service.handle_subscription_cancelled(
            db,
            obj.get("id"),
            canceled_at=from_timestamp(obj.get("canceled_at") or obj.get("ended_at"))
        )

    async def _on_payment_succeeded(self, db: AsyncSession, obj: Dict[str, Any]) -> bool:
        # First invoices are covered by checkout.session.completed
        if obj.get("billing_reason") != "subscription_cycle":
            logger.info(f"Ignoring invoice {obj.get('id')} with billing_reason={obj.get('billing_reason')}")
            return False
        return await subscription_service.handle_subscription_renewal(db, obj)

    async def _on_payment_failed(self, db: AsyncSession, obj: Dict[str, Any]) -> bool:
        return await subscription_service.handle_payment_failed(db, obj)

    async def process_webhook(self, db: AsyncSession, payload: bytes, signature: Optional[str]) -> WebhookResponse:
        """
        Verify, deduplicate and dispatch one webhook delivery.

        The stripe_webhooks row and every write made by the handler commit
        together. A second delivery of the same event collides on the unique
        event id and is reported as a duplicate. If the handler fails the
        whole transaction rolls back, so Stripe's retry is processed afresh.
        """
        event = stripe_service.construct_event(payload, signature)
        if not isinstance(event, dict):
            raise WebhookPayloadError("Webhook payload must be a JSON object")

        event_id = event.get("id")
        event_type = event.get("type")
        if not event_id or not event_type:
            raise WebhookPayloadError("Webhook event is missing id or type")

        data = event.get("data", {})
        obj = (data.get("object") or {}) if isinstance(data, dict) else None
        if not isinstance(obj, dict):
            raise WebhookPayloadError("Webhook event data.object must be a JSON object")
        logger.info(f"Received Stripe webhook {event_type} ({event_id})")

        existing = await stripe_webhook_crud.get_by_event_id(db, event_id)
        if existing:
            logger.info(f"Duplicate webhook {event_id} ignored")
            return WebhookResponse(
                success=True,
                event_id=event_id,
                event_type=event_type,
                action=existing.action,
                duplicate=True
            )

        customer_id, subscription_id = self._extract_ids(event_type, obj)
        action, handler = self._handlers.get(event_type, ("ignored", None))

        try:
            webhook_row = await stripe_webhook_crud.create_with_extra(
                db,
                obj_in=StripeWebhookCreate(
                    event_id=event_id,
                    event_type=event_type,
                    stripe_customer_id=customer_id,
                    stripe_subscription_id=subscription_id
                ),
                extra_data={"action": action, "webhook_timestamp": datetime.utcnow()},
                commit=False
            )

            if handler is None:
                logger.info(f"Unhandled event type: {event_type}")
            elif not await handler(db, obj):
                action = f"{action}_skipped"
                webhook_row.action = action

            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            # Only a concurrent delivery of this same event counts as a duplicate
            if not await stripe_webhook_crud.get_by_event_id(db, event_id):
                logger.exception(f"Failed to process webhook {event_id} ({event_type})")
                raise
            logger.info(f"Webhook {event_id} already processed concurrently: {e.orig}")
            return WebhookResponse(
                success=True,
                event_id=event_id,
                event_type=event_type,
                duplicate=True
            )
        except Exception:
            await db.rollback()
            logger.exception(f"Failed to process webhook {event_id} ({event_type})")
            raise

        logger.info(f"Processed webhook {event_id}: {action}")
        return WebhookResponse(
            success=True,
            event_id=event_id,
            event_type=event_type,
            action=action
        )


# Create a singleton instance
webhook_service = WebhookService()
