from sqlalchemy import Column, String, Integer, Text, Numeric, Boolean, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
import uuid
import enum
from .base import Base, TimestampMixin

class PlanType(str, enum.Enum):
    """How a plan is billed"""
    ONE_TIME = "one_time"
    SUBSCRIPTION = "subscription"

class BillingPeriod(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"

class Plan(Base, TimestampMixin):
    """Reference table for purchasable credit plans"""
    __tablename__ = "plans"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    sku = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    credits = Column(Integer, nullable=False, default=0)  # Credits granted per purchase / billing cycle
    price = Column(Numeric(10, 2), nullable=False)
    type = Column(SQLEnum(PlanType), default=PlanType.ONE_TIME, nullable=False)
    billing_period = Column(SQLEnum(BillingPeriod), nullable=True)  # Only for subscription plans
    stripe_product_id = Column(String(255), nullable=True)
    stripe_price_id = Column(String(255), nullable=True)
    active = Column(Boolean, default=True, nullable=False)

    @property
    def is_subscription(self) -> bool:
        return self.type == PlanType.SUBSCRIPTION
