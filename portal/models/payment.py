"""
PaymentRecord: subscription payments.
A record starts PENDING, the gateway confirms it (SUCCESS) or fails it (FAILED);
applied_at is set exactly once, when the payment activated the subscription.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String

from portal.db.base import Base, OrderedMixin


class Payment(OrderedMixin, Base):
    __tablename__ = "portal_payments"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="PENDING")  # PaymentStatus
    subscription_type = Column(String, nullable=False)
    target_class = Column(String, nullable=True)
    gateway_ref = Column(String, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    applied_at = Column(DateTime(timezone=True), nullable=True)
