from sqlalchemy import Column, String, Integer, Numeric, Boolean, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from datetime import datetime
import uuid
import enum
from .base import Base, TimestampMixin

class ResourceCategory(str, enum.Enum):
    INTERVIEW_TIPS = "interview_tips"
    CV_GUIDES = "cv_guides"
    JOB_SEARCH = "job_search"
    CAREER_ADVICE = "career_advice"
    TEMPLATES = "templates"
    COURSES = "courses"

class PurchaseMethod(str, enum.Enum):
    CREDITS = "credits"
    FREE = "free"

class Resource(Base, TimestampMixin):
    """Career content that can be unlocked for free or with credits"""
    __tablename__ = "resources"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(SQLEnum(ResourceCategory), nullable=False)
    is_paid = Column(Boolean, default=False, nullable=False)
    price = Column(Numeric(10, 2), nullable=True)
    credits = Column(Integer, nullable=True)  # Null means credits are not accepted
    active = Column(Boolean, default=True, nullable=False)

class UserResource(Base, TimestampMixin):
    """A resource unlocked by a user"""
    __tablename__ = "user_resources"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(String, nullable=False, index=True)
    resource_id = Column(UUID(as_uuid=True), ForeignKey("resources.id"), nullable=False)
    purchase_method = Column(SQLEnum(PurchaseMethod), nullable=False)
    credits_spent = Column(Integer, nullable=True)
    purchased_at = Column(DateTime, default=datetime.utcnow, nullable=False)
