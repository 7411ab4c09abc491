import logging
from typing import Optional, Dict, Any, Tuple
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from jobapply.core.config import settings
from jobapply.core.exceptions import WebhookPayloadError
from jobapply.crud.plan import plan_crud
from jobapply.crud.promo_code import promo_code_crud
from jobapply.crud.subscription import subscription_crud
from jobapply.crud.transaction import transaction_crud
from jobapply.crud.user_plan import user_plan_crud
from jobapply.models.plan import Plan
from jobapply.models.subscription import Subscription, SubscriptionStatus
from jobapply.models.user_plan import UserPlan, UserPlanStatus
from jobapply.models.transaction import TransactionType, TransactionStatus
from jobapply.schemas.billing import SubscriptionCreate, UserPlanCreate, TransactionCreate
from jobapply.services.stripe_service import (
    stripe_service,
    from_cents,
    get_period_bounds,
    get_invoice_subscription_id,
    stripe_object_id
)

logger = logging.getLogger(__name__)

GRACE_PERIOD_DAYS = 3

TERMINAL_USER_PLAN_STATUSES = (UserPlanStatus.EXPIRED, UserPlanStatus.CANCELLED)


class SubscriptionService:
    """
    Applies Stripe billing events to subscriptions, the credit ledger and
    transactions, and expires lapsed ledger rows.

    Event handlers write through the caller's session without committing;
    the webhook layer owns the transaction.
    """

    @staticmethod
    def map_stripe_status(stripe_status: str) -> SubscriptionStatus:
        """Map a Stripe subscription status to the internal subscription status"""
        if stripe_status == "active":
            return SubscriptionStatus.ACTIVE
        if stripe_status == "past_due":
            return SubscriptionStatus.PAST_DUE
        if stripe_status in ("canceled", "cancelled"):
            return SubscriptionStatus.CANCELED
        if stripe_status == "unpaid":
            return SubscriptionStatus.UNPAID
        if stripe_status in ("incomplete", "incomplete_expired"):
            return SubscriptionStatus.INCOMPLETE
        return SubscriptionStatus.ACTIVE

    @staticmethod
    def map_stripe_status_to_user_plan(stripe_status: str, cancel_at_period_end: bool) -> UserPlanStatus:
        """
        Map a Stripe subscription status to a ledger row status.
        past_due and unpaid keep access; the sweeper ends it after the grace window.
        """
        if cancel_at_period_end:
            return UserPlanStatus.ACTIVE
        if stripe_status in ("canceled", "cancelled", "incomplete", "incomplete_expired"):
            return UserPlanStatus.CANCELLED
        return UserPlanStatus.ACTIVE

    async def handle_checkout_session_completed(self, db: AsyncSession, session: Dict[str, Any]) -> bool:
        """
        Grant the purchased plan for a paid checkout session.
        Returns False when the session was already applied.
        """
        session_id = session.get("id")
        metadata = session.get("metadata") or {}
        user_id = metadata.get("userId")
        plan_id = metadata.get("planId")

        if not user_id or not plan_id:
            raise WebhookPayloadError("Missing required metadata in checkout session")

        try:
            plan_uuid = UUID(str(plan_id))
            promo_code_id = UUID(metadata["promoCodeId"]) if metadata.get("promoCodeId") else None
            discount_amount = Decimal(metadata["discountApplied"]) if metadata.get("discountApplied") else None
        except (ValueError, InvalidOperation) as e:
            raise WebhookPayloadError(f"Invalid checkout session metadata: {e}")

        plan = await plan_crud.get(db, id=plan_uuid, raise_if_not_found=False)
        if not plan:
            raise WebhookPayloadError(f"Plan not found: {plan_id}")

        stripe_subscription_id = stripe_object_id(session.get("subscription"))
        if plan.is_subscription and not stripe_subscription_id:
            raise WebhookPayloadError(f"Checkout session {session_id} has no subscription for plan {plan.sku}")

        if session_id and await transaction_crud.get_by_field(db, field="stripe_checkout_session_id", value=session_id):
            logger.info(f"Checkout session {session_id} already applied, skipping")
            return False

        transaction = await transaction_crud.create(
            db,
            obj_in=TransactionCreate(
                user_id=user_id,
                plan_id=plan.id,
                stripe_payment_intent_id=stripe_object_id(session.get("payment_intent")),
                stripe_checkout_session_id=session_id,
                type=TransactionType.SUBSCRIPTION if plan.is_subscription else TransactionType.PURCHASE,
                status=TransactionStatus.COMPLETED,
                amount=from_cents(session.get("amount_total")),
                currency=session.get("currency") or settings.stripe_currency,
                description=f"{plan.name} purchase",
                promo_code_id=promo_code_id,
                discount_amount=discount_amount
            ),
            commit=False
        )

        if plan.is_subscription:
            stripe_subscription = await stripe_service.get_subscription(stripe_subscription_id)
            subscription, _ = await self.handle_subscription_created(
                db,
                stripe_subscription=stripe_subscription,
                user_id=user_id,
                plan=plan,
                stripe_customer_id=stripe_object_id(session.get("customer"))
            )
            transaction.subscription_id = subscription.id
            await db.flush()
            logger.info(f"Subscription {stripe_subscription_id} created for user {user_id}")
        else:
            await user_plan_crud.create(
                db,
                obj_in=UserPlanCreate(
                    user_id=user_id,
                    plan_id=plan.id,
                    subscription_id=None,
                    credits_remaining=plan.credits,
                    status=UserPlanStatus.ACTIVE,
                    auto_renew=False,
                    expires_at=None
                ),
                commit=False
            )
            logger.info(f"User plan created with {plan.credits} credits for user {user_id}")

        if promo_code_id:
            await promo_code_crud.increment_usage(db, promo_code_id, commit=False)

        return True

    async def handle_subscription_created(
        self,
        db: AsyncSession,
        *,
        stripe_subscription: Dict[str, Any],
        user_id: str,
        plan: Plan,
        stripe_customer_id: Optional[str] = None
    ) -> Tuple[Subscription, UserPlan]:
        """Create the subscription record and its backing ledger row"""
        period_start, period_end = get_period_bounds(stripe_subscription)
        if period_start is None or period_end is None:
            raise WebhookPayloadError(f"Subscription {stripe_subscription.get('id')} has no billing period")

        subscription = await subscription_crud.create(
            db,
            obj_in=SubscriptionCreate(
                user_id=user_id,
                plan_id=plan.id,
                stripe_subscription_id=stripe_subscription.get("id"),
                stripe_customer_id=stripe_object_id(stripe_subscription.get("customer")) or stripe_customer_id or "",
                status=SubscriptionStatus.ACTIVE,
                current_period_start=period_start,
                current_period_end=period_end,
                cancel_at_period_end=False,
                amount=plan.price
            ),
            commit=False
        )

        user_plan = await user_plan_crud.create(
            db,
            obj_in=UserPlanCreate(
                user_id=user_id,
                plan_id=plan.id,
                subscription_id=subscription.id,
                credits_remaining=plan.credits,
                status=UserPlanStatus.ACTIVE,
                auto_renew=True,
                expires_at=period_end
            ),
            commit=False
        )

        return subscription, user_plan

    async def handle_subscription_updated(self, db: AsyncSession, stripe_subscription: Dict[str, Any]) -> bool:
        """Mirror a Stripe subscription change onto the subscription and its ledger rows"""
        stripe_subscription_id = stripe_subscription.get("id")
        subscription = await subscription_crud.get_by_stripe_id(db, stripe_subscription_id)
        if not subscription:
            logger.warning(f"Subscription not found: {stripe_subscription_id}")
            return False

        stripe_status = stripe_subscription.get("status") or ""
        cancel_at_period_end = bool(stripe_subscription.get("cancel_at_period_end"))
        period_start, period_end = get_period_bounds(stripe_subscription)

        update_data = {
            "status": self.map_stripe_status(stripe_status),
            "cancel_at_period_end": cancel_at_period_end,
        }
        if period_start and period_end:
            update_data["current_period_start"] = period_start
            update_data["current_period_end"] = period_end

        await subscription_crud.update(db, db_obj=subscription, obj_in=update_data, commit=False)

        user_plan_status = self.map_stripe_status_to_user_plan(stripe_status, cancel_at_period_end)
        for user_plan in await user_plan_crud.get_by_subscription_id(db, subscription.id):
            if user_plan.status in TERMINAL_USER_PLAN_STATUSES:
                continue
            await user_plan_crud.update(
                db,
                db_obj=user_plan,
                obj_in={
                    "status": user_plan_status,
                    "expires_at": period_end or user_plan.expires_at,
                    "auto_renew": not cancel_at_period_end,
                },
                commit=False
            )

        logger.info(f"Subscription {stripe_subscription_id} updated: {stripe_status}, cancel_at_period_end={cancel_at_period_end}")
        return True

    async def handle_subscription_cancelled(
        self,
        db: AsyncSession,
        stripe_subscription_id: str,
        canceled_at: Optional[datetime] = None
    ) -> bool:
        """Close a subscription Stripe has deleted"""
        subscription = await subscription_crud.get_by_stripe_id(db, stripe_subscription_id)
        if not subscription:
            logger.warning(f"Subscription not found: {stripe_subscription_id}")
            return False

        await subscription_crud.update(
            db,
            db_obj=subscription,
            obj_in={
                "status": SubscriptionStatus.CANCELED,
                "canceled_at": canceled_at or datetime.utcnow(),
            },
            commit=False
        )

        for user_plan in await user_plan_crud.get_by_subscription_id(db, subscription.id):
            update_data = {"auto_renew": False}
            if user_plan.status == UserPlanStatus.ACTIVE:
                update_data["status"] = UserPlanStatus.CANCELLED
            await user_plan_crud.update(db, db_obj=user_plan, obj_in=update_data, commit=False)

        logger.info(f"Subscription {stripe_subscription_id} cancelled")
        return True

    async def handle_subscription_renewal(self, db: AsyncSession, invoice: Dict[str, Any]) -> bool:
        """Top the backing ledger rows back up to the plan's credits for the new period"""
        stripe_subscription_id = get_invoice_subscription_id(invoice)
        if not stripe_subscription_id:
            logger.warning(f"Invoice {invoice.get('id')} has no subscription, skipping renewal")
            return False

        subscription = await subscription_crud.get_by_stripe_id(db, stripe_subscription_id)
        if not subscription:
            logger.warning(f"Subscription not found: {stripe_subscription_id}")
            return False

        plan = await plan_crud.get(db, id=subscription.plan_id, raise_if_not_found=False)
        if not plan:
            logger.error(f"Plan {subscription.plan_id} not found for subscription {stripe_subscription_id}")
            return False

        # Stripe is the source of truth for the new period
        stripe_subscription = await stripe_service.get_subscription(stripe_subscription_id)
        period_start, period_end = get_period_bounds(stripe_subscription)

        for user_plan in await user_plan_crud.get_by_subscription_id(db, subscription.id):
            if user_plan.status != UserPlanStatus.ACTIVE:
                continue
            update_data = {"credits_remaining": plan.credits}
            if period_end:
                update_data["expires_at"] = period_end
            await user_plan_crud.update(db, db_obj=user_plan, obj_in=update_data, commit=False)

        subscription_update = {"status": SubscriptionStatus.ACTIVE}
        if period_start and period_end:
            subscription_update["current_period_start"] = period_start
            subscription_update["current_period_end"] = period_end
        await subscription_crud.update(db, db_obj=subscription, obj_in=subscription_update, commit=False)

        await transaction_crud.create(
            db,
            obj_in=TransactionCreate(
                user_id=subscription.user_id,
                plan_id=plan.id,
                subscription_id=subscription.id,
                stripe_payment_intent_id=stripe_object_id(invoice.get("payment_intent")),
                stripe_invoice_id=invoice.get("id"),
                type=TransactionType.RENEWAL,
                status=TransactionStatus.COMPLETED,
                amount=from_cents(invoice.get("amount_paid")),
                currency=invoice.get("currency") or settings.stripe_currency,
                description="Subscription renewal"
            ),
            commit=False
        )

        logger.info(f"Subscription {stripe_subscription_id} renewed with {plan.credits} credits")
        return True

    async def handle_payment_failed(self, db: AsyncSession, invoice: Dict[str, Any]) -> bool:
        """Record a failed renewal charge. Access is kept until the sweeper ends it."""
        stripe_subscription_id = get_invoice_subscription_id(invoice)
        subscription = None
        if stripe_subscription_id:
            subscription = await subscription_crud.get_by_stripe_id(db, stripe_subscription_id)
        if not subscription:
            logger.warning(f"Payment failed for invoice {invoice.get('id')} with no known subscription")
            return False

        await transaction_crud.create(
            db,
            obj_in=TransactionCreate(
                user_id=subscription.user_id,
                plan_id=subscription.plan_id,
                subscription_id=subscription.id,
                stripe_payment_intent_id=stripe_object_id(invoice.get("payment_intent")),
                stripe_invoice_id=invoice.get("id"),
                type=TransactionType.RENEWAL,
                status=TransactionStatus.FAILED,
                amount=from_cents(invoice.get("amount_due")),
                currency=invoice.get("currency") or settings.stripe_currency,
                description="Payment failed"
            ),
            commit=False
        )

        await subscription_crud.update(
            db,
            db_obj=subscription,
            obj_in={"status": SubscriptionStatus.PAST_DUE},
            commit=False
        )

        logger.warning(f"Payment failed for subscription {stripe_subscription_id}, marked past_due")
        return True

    async def check_expired_subscriptions(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """
        Expire active ledger rows whose expiry is more than GRACE_PERIOD_DAYS
        in the past, and cancel their subscriptions. Safe to run repeatedly.
        Returns the number of rows expired.
        """
        now = now or datetime.utcnow()
        grace_period_end = now - timedelta(days=GRACE_PERIOD_DAYS)

        expired_user_plans = await user_plan_crud.get_expired(db, grace_period_end)

        try:
            for user_plan in expired_user_plans:
                await user_plan_crud.update(
                    db,
                    db_obj=user_plan,
                    obj_in={"status": UserPlanStatus.EXPIRED, "auto_renew": False},
                    commit=False
                )

                if user_plan.subscription_id:
                    await subscription_crud.update_by_id(
                        db,
                        id=user_plan.subscription_id,
                        obj_in={"status": SubscriptionStatus.CANCELED},
                        raise_if_not_found=False,
                        commit=False
                    )

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if expired_user_plans:
            logger.info(f"Expired {len(expired_user_plans)} user plan(s) past the {GRACE_PERIOD_DAYS}-day grace period")

        return len(expired_user_plans)


# Create a singleton instance
subscription_service = SubscriptionService()
