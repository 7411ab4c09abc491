from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from jobapply.core.auth import get_current_user, get_current_admin
from jobapply.core.database import get_db
from jobapply.crud import application_batch_crud
from jobapply.schemas.auth import TokenData
from jobapply.schemas.application import (
    ApplicationBatchCreate,
    ApplicationBatchResponse,
    UploadApplicationsResponse
)
from jobapply.services.credit_service import credit_service
from jobapply.utils.csv_parser import parse_applications_csv

logger = logging.getLogger(__name__)

router = APIRouter(tags=["applications"])

@router.post("/admin/applications/upload", response_model=UploadApplicationsResponse)
async def upload_applications(
    user_id: str = Form(...),
    csv_file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_admin)
):
    """Upload a CSV of applications made for a user. Each row costs one credit."""
    if not csv_file.filename or not csv_file.filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed"
        )

    content = await csv_file.read()
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV file must be UTF-8 encoded"
        )

    rows, errors = parse_applications_csv(text)
    if errors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "CSV validation failed", "details": errors}
        )
    if not rows:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV file contains no valid data"
        )

    # The batch and its credit deduction commit together
    try:
        deduction = await credit_service.deduct_credits(db, user_id, len(rows), commit=False)
        batch = await application_batch_crud.create(
            db,
            obj_in=ApplicationBatchCreate(
                user_id=user_id,
                batch_number=await application_batch_crud.get_next_batch_number(db, user_id),
                total_applications=len(rows),
                credits_deducted=deduction.credits_deducted
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
            detail=f"Failed to upload applications: {str(e)}"
        )

    logger.info(f"Created batch {batch.batch_number} with {len(rows)} applications for user {user_id}")

    return UploadApplicationsResponse(
        success=True,
        message=f"Successfully uploaded {len(rows)} applications",
        applications_created=len(rows),
        batch_number=batch.batch_number,
        credits_deducted=deduction.credits_deducted,
        batch_id=batch.id
    )

@router.get("/applications/batches", response_model=List[ApplicationBatchResponse])
async def get_batches(
    db: AsyncSession = Depends(get_db),
    current_user: TokenData = Depends(get_current_user)
):
    """Get the current user's application batches, newest first"""
    return await application_batch_crud.get_by_user(db, current_user.user_id)
