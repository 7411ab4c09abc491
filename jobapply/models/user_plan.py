from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, CheckConstraint, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from datetime import datetime
import uuid
import enum
from .base import Base, TimestampMixin

class UserPlanStatus(str, enum.Enum):
    """Ledger row status. expired and cancelled are terminal."""
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

class UserPlan(Base, TimestampMixin):
    """Credit ledger row: one batch of purchased or granted credits"""
    __tablename__ = "user_plans"
    __table_args__ = (
        CheckConstraint("credits_remaining >= 0", name="ck_user_plans_credits_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(String, nullable=False, index=True)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("plans.id"), nullable=False)
    subscription_id = Column(UUID(as_uuid=True), ForeignKey("subscriptions.id"), nullable=True, index=True)  # Null for one-time purchases
    credits_remaining = Column(Integer, nullable=False)
    status = Column(SQLEnum(UserPlanStatus), default=UserPlanStatus.ACTIVE, nullable=False)
    auto_renew = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime, nullable=True)  # Null means the credits never expire
    purchased_at = Column(DateTime, default=datetime.utcnow, nullable=False)
