from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID
import logging

from jobapply.core.auth import get_current_user, get_current_admin
from jobapply.core.database import get_db
from jobapply.crud import resource_crud, user_resource_crud
from jobapply.models.resource import PurchaseMethod
from jobapply.schemas.auth import TokenData
from jobapply.schemas.resource import (
    ResourceCreate,
    ResourceUpdate,
    ResourceResponse,
    UserResourceCreate,
    UserResourceResponse,
    PurchaseResourceRequest
)
from jobapply.services.credit_service import credit_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["resources"])

@router.get("/resources", response_model=List[ResourceResponse])
async def get_resources(db: AsyncSession = Depends(get_db)):
    """Get all active resources"""
    return await resource_crud.get_active(db)

@router.get("/resources/purchased", response_model=List[UserResourceResponse])
async def get_purchased_resources(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """Get the resources the current user has unlocked"""
    return await user_resource_crud.get_by_user(db, current_user.user_id)

@router.post("/resources/{resource_id}/purchase", response_model=UserResourceResponse)
async def purchase_resource(
    resource_id: UUID,
    request: PurchaseResourceRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """Unlock a resource, spending credits when it is paid"""
    resource = await resource_crud.get(db, id=resource_id, raise_if_not_found=False)
    if not resource:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Resource not found"
        )

    if not resource.active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Resource is not available"
        )

    if await user_resource_crud.has_purchased(db, current_user.user_id, resource.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You already own this resource"
        )

    if not resource.is_paid:
        return await user_resource_crud.create(
            db,
            obj_in=UserResourceCreate(
                user_id=current_user.user_id,
                resource_id=resource.id,
                purchase_method=PurchaseMethod.FREE
            )
        )

    if request.purchase_method != PurchaseMethod.CREDITS.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported purchase method: {request.purchase_method}"
        )

    if not resource.credits:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This resource cannot be purchased with credits"
        )

    # Deduction and ownership commit together
    try:
        await credit_service.deduct_credits(db, current_user.user_id, resource.credits, commit=False)
        user_resource = await user_resource_crud.create(
            db,
            obj_in=UserResourceCreate(
                user_id=current_user.user_id,
                resource_id=resource.id,
                purchase_method=PurchaseMethod.CREDITS,
                credits_spent=resource.credits
            ),
            commit=False
        )
        await db.commit()
    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to purchase resource: {str(e)}"
        )

    await db.refresh(user_resource)
    logger.info(f"User {current_user.user_id} bought resource {resource.slug} for {resource.credits} credits")
    return user_resource

@router.post("/admin/resources", response_model=ResourceResponse, status_code=status.HTTP_201_CREATED)
async def create_resource(
    resource_in: ResourceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin)
):
    """Create a resource"""
    if await resource_crud.exists_by_field(db, field="slug", value=resource_in.slug):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Resource with this slug already exists"
        )
    return await resource_crud.create(db, obj_in=resource_in)

@router.put("/admin/resources/{resource_id}", response_model=ResourceResponse)
async def update_resource(
    resource_id: UUID,
    resource_in: ResourceUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin)
):
    """Update a resource"""
    return await resource_crud.update_by_id(db, id=resource_id, obj_in=resource_in)
