from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from jobapply.core.auth import get_current_admin
from jobapply.core.database import get_db
from jobapply.crud import plan_crud
from jobapply.models.plan import PlanType
from jobapply.schemas.auth import TokenData
from jobapply.schemas.plan import PlanCreate, PlanUpdate, PlanResponse

router = APIRouter(tags=["plans"])

def _check_billing_period(plan_type, billing_period):
    if plan_type == PlanType.SUBSCRIPTION and billing_period is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Subscription plans require a billing period"
        )

@router.get("/plans", response_model=List[PlanResponse])
async def get_plans(db: AsyncSession = Depends(get_db)):
    """Get all purchasable plans"""
    return await plan_crud.get_active_plans(db)

@router.get("/admin/plans", response_model=List[PlanResponse])
async def get_all_plans(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin),
    skip: int = 0,
    limit: int = 100
):
    """Get every plan, including inactive ones"""
    plans, _ = await plan_crud.get_multi(db, skip=skip, limit=limit, order_by="price", order_desc=False)
    return plans

@router.post("/admin/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    plan_in: PlanCreate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin)
):
    """Create a new plan"""
    if await plan_crud.get_by_sku(db, plan_in.sku):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Plan with this SKU already exists"
        )
    _check_billing_period(plan_in.type, plan_in.billing_period)

    return await plan_crud.create(db, obj_in=plan_in)

@router.put("/admin/plans/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: UUID,
    plan_in: PlanUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin)
):
    """Update a plan. Existing ledger rows keep the credits they were granted."""
    plan = await plan_crud.get(db, id=plan_id)
    _check_billing_period(
        plan_in.type or plan.type,
        plan_in.billing_period if "billing_period" in plan_in.model_fields_set else plan.billing_period
    )

    return await plan_crud.update(db, db_obj=plan, obj_in=plan_in)

@router.delete("/admin/plans/{plan_id}", response_model=PlanResponse)
async def deactivate_plan(
    plan_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin)
):
    """Deactivate a plan. Plans are referenced by the ledger and never deleted."""
    return await plan_crud.update_by_id(db, id=plan_id, obj_in={"active": False})
