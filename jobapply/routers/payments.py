from fastapi import APIRouter, HTTPException, Depends, status, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from decimal import Decimal
import logging

from jobapply.core.auth import get_current_user
from jobapply.core.config import settings
from jobapply.core.database import get_db
from jobapply.crud import plan_crud, transaction_crud
from jobapply.schemas.auth import TokenData
from jobapply.schemas.billing import (
    CreateCheckoutRequest,
    CheckoutResponse,
    CompleteCheckoutRequest,
    CompleteCheckoutResponse,
    WebhookResponse
)
from jobapply.services.promo_code_service import promo_code_service
from jobapply.services.stripe_service import stripe_service
from jobapply.services.subscription_service import subscription_service
from jobapply.services.webhook_service import webhook_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payment", tags=["payments"])

@router.post("/create-checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(
    checkout_request: CreateCheckoutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """Create a Stripe checkout session for a plan"""
    try:
        plan = await plan_crud.get(db, id=checkout_request.plan_id, raise_if_not_found=False)
        if not plan or not plan.active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Plan not found"
            )

        amount = Decimal(plan.price)
        promo_code_id = None
        discount_applied = None

        if checkout_request.promo_code:
            validation = await promo_code_service.validate_promo_code(db, checkout_request.promo_code)
            if validation.valid:
                amount = promo_code_service.apply_discount(plan.price, validation.promo_code)
                promo_code_id = str(validation.promo_code.id)
                discount_applied = Decimal(plan.price) - amount
            else:
                # Invalid codes fall back to full price
                logger.info(f"Ignoring promo code {checkout_request.promo_code}: {validation.error}")

        customer_result = await stripe_service.create_or_get_customer(
            email=current_user.email,
            user_id=current_user.user_id
        )
        if not customer_result["success"]:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create customer: {customer_result['error']}"
            )

        session_result = await stripe_service.create_checkout_session(
            customer_id=customer_result["customer"].id,
            user_id=current_user.user_id,
            plan_id=str(plan.id),
            plan_name=plan.name,
            amount=amount,
            credits=plan.credits,
            description=plan.description,
            is_subscription=plan.is_subscription,
            billing_period=plan.billing_period.value if plan.billing_period else None,
            success_url=checkout_request.success_url or f"{settings.frontend_url}/dashboard?payment=success",
            cancel_url=checkout_request.cancel_url or f"{settings.frontend_url}/pricing?payment=cancelled",
            promo_code_id=promo_code_id,
            discount_applied=discount_applied
        )
        if not session_result["success"]:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create checkout session: {session_result['error']}"
            )

        session = session_result["session"]
        return CheckoutResponse(
            success=True,
            session_id=session.id,
            url=session_result["checkout_url"]
        )
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create checkout session: {str(e)}"
        )

@router.post("/complete-checkout", response_model=CompleteCheckoutResponse)
async def complete_checkout(
    request: CompleteCheckoutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """
    Apply a paid checkout session without waiting for its webhook.
    Safe alongside the webhook: a session is only ever applied once.
    """
    try:
        session = await stripe_service.retrieve_checkout_session(request.session_id)

        if (session.get("metadata") or {}).get("userId") != current_user.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Session does not belong to current user"
            )

        if session.get("payment_status") != "paid":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Checkout session is not paid (status: {session.get('payment_status')})"
            )

        try:
            applied = await subscription_service.handle_checkout_session_completed(db, session)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            # Lost the race to the webhook only if the session's transaction now exists
            if not await transaction_crud.get_by_field(db, field="stripe_checkout_session_id", value=request.session_id):
                raise
            applied = False
        except Exception:
            await db.rollback()
            raise

        return CompleteCheckoutResponse(
            success=True,
            session_id=request.session_id,
            applied=applied,
            message="Payment processed" if applied else "Payment was already processed"
        )
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to complete checkout: {str(e)}"
        )

@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """Handle Stripe webhooks. Non-2xx answers make Stripe retry."""
    try:
        payload = await request.body()
        sig_header = request.headers.get("stripe-signature")
        logger.info(f"Received Stripe webhook: {len(payload)} bytes")

        return await webhook_service.process_webhook(db, payload, sig_header)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Webhook processing failed: {str(e)}"
        )
