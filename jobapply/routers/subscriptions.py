from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import datetime
import logging

from jobapply.core.auth import get_current_user, get_current_admin
from jobapply.core.database import get_db
from jobapply.crud import plan_crud, subscription_crud, user_plan_crud, transaction_crud
from jobapply.models.subscription import Subscription
from jobapply.schemas.auth import TokenData
from jobapply.schemas.plan import PlanResponse
from jobapply.schemas.billing import (
    SubscriptionResponse,
    SubscriptionDetails,
    SubscriptionActionRequest,
    ReactivateSubscriptionRequest,
    SubscriptionActionResponse,
    UserPlanResponse,
    TransactionResponse,
    CreditBalanceResponse,
    SweepResponse
)
from jobapply.services.credit_service import credit_service
from jobapply.services.stripe_service import stripe_service
from jobapply.services.subscription_service import subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subscriptions"])

async def get_owned_subscription(db: AsyncSession, user_id: str, user_plan_id) -> Subscription:
    """Resolve the subscription behind one of the user's ledger rows"""
    user_plan = await user_plan_crud.get(db, id=user_plan_id, raise_if_not_found=False)
    if not user_plan or user_plan.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User plan not found"
        )

    if not user_plan.subscription_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Not a subscription"
        )

    subscription = await subscription_crud.get(db, id=user_plan.subscription_id, raise_if_not_found=False)
    if not subscription or not subscription.stripe_subscription_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription not found"
        )
    return subscription

@router.get("/subscription/details", response_model=List[SubscriptionDetails])
async def get_subscription_details(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """Get the current user's subscriptions with their plan and ledger row"""
    try:
        details = []
        for subscription in await subscription_crud.get_by_user(db, current_user.user_id):
            plan = await plan_crud.get(db, id=subscription.plan_id, raise_if_not_found=False)
            user_plans = await user_plan_crud.get_by_subscription_id(db, subscription.id)
            details.append(SubscriptionDetails(
                **SubscriptionResponse.model_validate(subscription).model_dump(),
                plan=PlanResponse.model_validate(plan) if plan else None,
                user_plan=UserPlanResponse.model_validate(user_plans[0]) if user_plans else None
            ))
        return details
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch subscription details: {str(e)}"
        )

@router.post("/subscription/cancel", response_model=SubscriptionActionResponse)
async def cancel_subscription(
    request: SubscriptionActionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """
    Cancel a subscription at Stripe, immediately or at the end of the period.
    Local state follows from the resulting webhook.
    """
    try:
        subscription = await get_owned_subscription(db, current_user.user_id, request.user_plan_id)

        result = await stripe_service.cancel_subscription(
            subscription.stripe_subscription_id,
            at_period_end=request.at_period_end
        )
        if not result["success"]:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to cancel subscription: {result['error']}"
            )

        stripe_subscription = result["subscription"]
        return SubscriptionActionResponse(
            success=True,
            message="Subscription will cancel at period end" if request.at_period_end else "Subscription cancelled",
            stripe_subscription_id=subscription.stripe_subscription_id,
            stripe_status=getattr(stripe_subscription, "status", None),
            cancel_at_period_end=getattr(stripe_subscription, "cancel_at_period_end", None)
        )
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to cancel subscription: {str(e)}"
        )

@router.post("/subscription/reactivate", response_model=SubscriptionActionResponse)
async def reactivate_subscription(
    request: ReactivateSubscriptionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """Undo a pending cancel-at-period-end"""
    try:
        subscription = await get_owned_subscription(db, current_user.user_id, request.user_plan_id)

        result = await stripe_service.reactivate_subscription(subscription.stripe_subscription_id)
        if not result["success"]:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to reactivate subscription: {result['error']}"
            )

        stripe_subscription = result["subscription"]
        return SubscriptionActionResponse(
            success=True,
            message="Subscription reactivated",
            stripe_subscription_id=subscription.stripe_subscription_id,
            stripe_status=getattr(stripe_subscription, "status", None),
            cancel_at_period_end=getattr(stripe_subscription, "cancel_at_period_end", None)
        )
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to reactivate subscription: {str(e)}"
        )

@router.get("/credits", response_model=CreditBalanceResponse)
async def get_credits(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """Get the current user's spendable credit balance"""
    return await credit_service.get_credit_balance(db, current_user.user_id)

@router.get("/user-plans", response_model=List[UserPlanResponse])
async def get_user_plans(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """Get every ledger row of the current user, including spent and expired ones"""
    return await user_plan_crud.get_by_user(db, current_user.user_id)

@router.get("/transactions", response_model=List[TransactionResponse])
async def get_transactions(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user),
    skip: int = 0,
    limit: int = 50
):
    """Get the current user's transactions, newest first"""
    return await transaction_crud.get_by_user(db, current_user.user_id, skip=skip, limit=limit)

@router.get("/admin/transactions", response_model=List[TransactionResponse])
async def get_all_transactions(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin),
    user_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 100
):
    """Get transactions across all users"""
    transactions, _ = await transaction_crud.get_multi(
        db,
        skip=skip,
        limit=limit,
        filters={"user_id": user_id} if user_id else None
    )
    return transactions

@router.get("/admin/subscriptions", response_model=List[SubscriptionResponse])
async def get_all_subscriptions(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin),
    skip: int = 0,
    limit: int = 100
):
    """Get subscriptions across all users"""
    subscriptions, _ = await subscription_crud.get_multi(db, skip=skip, limit=limit)
    return subscriptions

@router.post("/admin/subscriptions/sweep", response_model=SweepResponse)
async def sweep_expired_plans(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin)
):
    """Expire ledger rows past their grace period"""
    try:
        expired_count = await subscription_service.check_expired_subscriptions(db, now=datetime.utcnow())
        return SweepResponse(success=True, expired_count=expired_count)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to expire plans: {str(e)}"
        )
