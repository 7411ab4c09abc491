from pydantic import BaseModel
from datetime import datetime
from uuid import UUID


class ApplicationBatchCreate(BaseModel):
    user_id: str
    batch_number: int
    total_applications: int
    credits_deducted: int
    status: str = "pending"
    submission_mode: str = "manual"

class ApplicationBatchResponse(BaseModel):
    id: UUID
    user_id: str
    batch_number: int
    total_applications: int
    credits_deducted: int
    status: str
    submission_mode: str
    created_at: datetime

    class Config:
        from_attributes = True

class UploadApplicationsResponse(BaseModel):
    success: bool
    message: str
    applications_created: int
    batch_number: int
    credits_deducted: int
    batch_id: UUID
