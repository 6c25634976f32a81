from uuid import uuid4

from sqlalchemy import Boolean, Column, Integer, String, Text

from portal.db.base import Base, OrderedMixin


class Plan(OrderedMixin, Base):
    __tablename__ = "portal_plans"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False)  # SubscriptionType
    price = Column(Integer, nullable=False)  # whole currency units (INR)
    duration_days = Column(Integer, nullable=False, default=365)
    active = Column(Boolean, nullable=False, default=True)
