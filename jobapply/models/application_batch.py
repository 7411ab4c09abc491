from sqlalchemy import Column, String, Integer, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
import uuid
from .base import Base, TimestampMixin

class ApplicationBatch(Base, TimestampMixin):
    """A batch of job applications uploaded for a user"""
    __tablename__ = "application_batches"
    __table_args__ = (
        UniqueConstraint("user_id", "batch_number", name="uq_application_batches_user_batch"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(String, nullable=False, index=True)
    batch_number = Column(Integer, nullable=False)  # Per-user sequence starting at 1
    total_applications = Column(Integer, nullable=False)
    credits_deducted = Column(Integer, nullable=False)
    status = Column(String(50), default="pending", nullable=False)
    submission_mode = Column(String(50), default="manual", nullable=False)
