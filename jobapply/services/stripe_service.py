import json
import logging
import stripe
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any, Tuple

from jobapply.core.config import settings
from jobapply.core.exceptions import WebhookSignatureError

logger = logging.getLogger(__name__)


def to_cents(amount: Decimal) -> int:
    """Convert a dollar amount to integer cents"""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(amount: Optional[int]) -> Decimal:
    """Convert Stripe integer cents to a dollar amount"""
    return (Decimal(amount or 0) / Decimal(100)).quantize(Decimal("0.01"))


def from_timestamp(ts: Optional[int]) -> Optional[datetime]:
    """Convert a Stripe unix timestamp to a naive UTC datetime"""
    if ts is None:
        return None
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).replace(tzinfo=None)


def get_period_bounds(subscription: Dict[str, Any]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Current period window of a Stripe subscription.
    Newer API versions carry the window on the subscription items only.
    """
    start = subscription.get("current_period_start")
    end = subscription.get("current_period_end")
    if start is None or end is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            start = start if start is not None else items[0].get("current_period_start")
            end = end if end is not None else items[0].get("current_period_end")
    return from_timestamp(start), from_timestamp(end)


def stripe_object_id(value: Any) -> Optional[str]:
    """Stripe references arrive as an id string or as an expanded object"""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def get_invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    """Subscription id of an invoice, across old and new invoice shapes"""
    subscription_id = invoice.get("subscription")
    if not subscription_id:
        details = (invoice.get("parent") or {}).get("subscription_details") or {}
        subscription_id = details.get("subscription")
    return stripe_object_id(subscription_id)


class StripeService:
    def __init__(self):
        if settings.stripe_secret_key:
            stripe.api_key = settings.stripe_secret_key
        else:
            # Don't raise during import; startup validation reports it
            logger.warning("STRIPE_SECRET_KEY not configured")
        self.webhook_secret = settings.stripe_webhook_secret or None

    @staticmethod
    def _to_dict(stripe_object) -> Dict[str, Any]:
        return stripe_object.to_dict()

    async def create_or_get_customer(self, email: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        """Find a Stripe customer by email or create one"""
        try:
            customers = stripe.Customer.list(email=email, limit=1)
            if customers.data:
                return {
                    "success": True,
                    "customer": customers.data[0]
                }

            customer = stripe.Customer.create(
                email=email,
                metadata={"user_id": user_id} if user_id else {}
            )
            return {
                "success": True,
                "customer": customer
            }
        except Exception as e:
            logger.error(f"Failed to get or create Stripe customer for {email}: {e}")
            return {
                "success": False,
                "error": str(e)
            }

    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        user_id: str,
        plan_id: str,
        plan_name: str,
        amount: Decimal,
        success_url: str,
        cancel_url: str,
        credits: Optional[int] = None,
        description: Optional[str] = None,
        is_subscription: bool = False,
        billing_period: Optional[str] = None,
        promo_code_id: Optional[str] = None,
        discount_applied: Optional[Decimal] = None
    ) -> Dict[str, Any]:
        """Create a Stripe checkout session for a plan purchase"""
        try:
            if credits and description:
                product_description = f"{credits} Application Credits\n\n{description}"
            else:
                product_description = description or (f"{credits} Application Credits" if credits else None)

            product_data = {"name": plan_name}
            if product_description:
                product_data["description"] = product_description

            price_data = {
                "currency": settings.stripe_currency,
                "product_data": product_data,
                "unit_amount": to_cents(amount),
            }
            if is_subscription:
                price_data["recurring"] = {
                    "interval": "year" if billing_period == "yearly" else "month"
                }

            metadata = {
                "userId": user_id,
                "planId": plan_id,
                "promoCodeId": promo_code_id or "",
            }
            if discount_applied:
                metadata["discountApplied"] = str(discount_applied)

            params = {
                "customer": customer_id,
                "mode": "subscription" if is_subscription else "payment",
                "line_items": [{"price_data": price_data, "quantity": 1}],
                "success_url": success_url,
                "cancel_url": cancel_url,
                "client_reference_id": user_id,
                "metadata": metadata,
            }
            if is_subscription:
                params["subscription_data"] = {
                    "metadata": {"userId": user_id, "planId": plan_id}
                }

            session = stripe.checkout.Session.create(**params)

            return {
                "success": True,
                "session": session,
                "checkout_url": session.url
            }
        except Exception as e:
            logger.error(f"Failed to create checkout session for plan {plan_id}: {e}")
            return {
                "success": False,
                "error": str(e)
            }

    async def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
        """Fetch a checkout session as plain data. Errors propagate to the caller."""
        return self._to_dict(stripe.checkout.Session.retrieve(session_id))

    async def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Fetch the live subscription as plain data. Stripe is authoritative, so errors propagate."""
        return self._to_dict(stripe.Subscription.retrieve(subscription_id))

    async def cancel_subscription(self, subscription_id: str, at_period_end: bool = True) -> Dict[str, Any]:
        """Cancel a subscription now, or flag it to end with the current period"""
        try:
            if at_period_end:
                subscription = stripe.Subscription.modify(subscription_id, cancel_at_period_end=True)
            else:
                subscription = stripe.Subscription.cancel(subscription_id)
            return {
                "success": True,
                "subscription": subscription
            }
        except Exception as e:
            logger.error(f"Failed to cancel subscription {subscription_id}: {e}")
            return {
                "success": False,
                "error": str(e)
            }

    async def reactivate_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Undo a pending cancel-at-period-end"""
        try:
            subscription = stripe.Subscription.modify(subscription_id, cancel_at_period_end=False)
            return {
                "success": True,
                "subscription": subscription
            }
        except Exception as e:
            logger.error(f"Failed to reactivate subscription {subscription_id}: {e}")
            return {
                "success": False,
                "error": str(e)
            }

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify and decode a webhook payload.

        Without a configured signing secret the payload is trusted as-is
        (degraded mode, not for production).
        """
        if not self.webhook_secret:
            logger.warning("STRIPE_WEBHOOK_SECRET not configured. Webhook validation skipped.")
            try:
                return json.loads(payload)
            except ValueError as e:
                raise WebhookSignatureError(f"Invalid webhook payload: {e}")

        if not signature:
            raise WebhookSignatureError("Missing Stripe signature")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except Exception as e:
            raise WebhookSignatureError(f"Webhook signature verification failed: {e}")

        # Signature verified; dispatch on the plain JSON body
        return json.loads(payload)


# Create a singleton instance
stripe_service = StripeService()
