from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from jobapply.core.auth import get_current_user, get_current_admin
from jobapply.core.database import get_db
from jobapply.crud import promo_code_crud
from jobapply.schemas.auth import TokenData
from jobapply.schemas.promo_code import (
    PromoCodeCreate,
    PromoCodeUpdate,
    PromoCodeResponse,
    PromoCodeValidation,
    ValidatePromoCodeRequest
)
from jobapply.services.promo_code_service import promo_code_service

router = APIRouter(tags=["promo-codes"])

@router.post("/promo-code/validate", response_model=PromoCodeValidation)
async def validate_promo_code(
    request: ValidatePromoCodeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """Check whether a promo code can be applied at checkout"""
    return await promo_code_service.validate_promo_code(db, request.code)

@router.get("/admin/promo-codes", response_model=List[PromoCodeResponse])
async def get_promo_codes(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin),
    skip: int = 0,
    limit: int = 100
):
    """Get all promo codes"""
    promo_codes, _ = await promo_code_crud.get_multi(db, skip=skip, limit=limit)
    return promo_codes

@router.post("/admin/promo-codes", response_model=PromoCodeResponse, status_code=status.HTTP_201_CREATED)
async def create_promo_code(
    promo_code_in: PromoCodeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin)
):
    """Create a promo code. Codes are stored upper-case."""
    code = promo_code_in.code.upper()
    if await promo_code_crud.get_by_code(db, code):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Promo code already exists"
        )

    return await promo_code_crud.create_with_extra(
        db,
        obj_in=promo_code_in,
        extra_data={"code": code, "created_by": current_user.user_id}
    )

@router.put("/admin/promo-codes/{promo_code_id}", response_model=PromoCodeResponse)
async def update_promo_code(
    promo_code_id: UUID,
    promo_code_in: PromoCodeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin)
):
    """Update a promo code"""
    return await promo_code_crud.update_by_id(db, id=promo_code_id, obj_in=promo_code_in)

@router.delete("/admin/promo-codes/{promo_code_id}")
async def delete_promo_code(
    promo_code_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin)
):
    """Delete a promo code. Transactions keep their reference to it."""
    await promo_code_crud.soft_delete(db, id=promo_code_id)
    return {"success": True, "message": "Promo code deleted"}
