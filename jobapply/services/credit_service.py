import logging
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from jobapply.crud.user_plan import user_plan_crud
from jobapply.core.exceptions import InsufficientCreditsError, ValidationError
from jobapply.schemas.billing import (
    CreditAllocation,
    DeductionResult,
    CreditBalanceResponse,
    UserPlanResponse
)

logger = logging.getLogger(__name__)


class CreditService:
    """Spends and reports credits held across a user's ledger rows"""

    async def deduct_credits(
        self,
        db: AsyncSession,
        user_id: str,
        quantity: int,
        *,
        commit: bool = True
    ) -> DeductionResult:
        """
        Deduct exactly `quantity` credits, oldest purchase first.

        All decrements run in the caller's transaction. Each one is conditional
        on the row still holding enough credits, so a concurrent spend makes the
        whole deduction fail instead of overdrawing. With commit=False nothing
        is committed and the caller owns the transaction; on failure it is
        rolled back either way.
        """
        if quantity <= 0:
            raise ValidationError("Credit quantity must be a positive integer")

        user_plans = await user_plan_crud.get_spendable(db, user_id)
        available = sum(up.credits_remaining for up in user_plans)

        if available < quantity:
            logger.info(f"Insufficient credits for user {user_id}: has {available}, needs {quantity}")
            raise InsufficientCreditsError(available=available, requested=quantity)

        remaining = quantity
        allocations: List[CreditAllocation] = []

        try:
            for user_plan in user_plans:
                if remaining == 0:
                    break

                take = min(remaining, user_plan.credits_remaining)
                deducted = await user_plan_crud.conditional_deduct(db, user_plan.id, take)
                if not deducted:
                    # Another request spent from this row after we read it
                    logger.warning(f"Concurrent spend on user plan {user_plan.id}, aborting deduction")
                    raise InsufficientCreditsError(available=quantity - remaining, requested=quantity)

                allocations.append(CreditAllocation(
                    user_plan_id=user_plan.id,
                    credits_deducted=take,
                    credits_remaining=user_plan.credits_remaining - take
                ))
                remaining -= take

            if commit:
                await db.commit()
        except Exception:
            await db.rollback()
            raise

        # The UPDATEs bypass the identity map; reload the touched rows
        if commit:
            for user_plan in user_plans:
                if any(a.user_plan_id == user_plan.id for a in allocations):
                    await db.refresh(user_plan)

        logger.info(f"Deducted {quantity} credits from user {user_id} across {len(allocations)} plan(s)")

        return DeductionResult(
            user_id=user_id,
            credits_deducted=quantity,
            allocations=allocations
        )

    async def get_credit_balance(self, db: AsyncSession, user_id: str) -> CreditBalanceResponse:
        """Total spendable credits and the active rows holding them"""
        user_plans = await user_plan_crud.get_spendable(db, user_id)
        return CreditBalanceResponse(
            user_id=user_id,
            total_credits=sum(up.credits_remaining for up in user_plans),
            user_plans=[UserPlanResponse.model_validate(up) for up in user_plans]
        )


# Create a singleton instance
credit_service = CreditService()
