from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String

from portal.db.base import Base, OrderedMixin
from portal.models.enums import Role


STUDENT_FIELDS = (
    "class_grade",
    "subscription_type",
    "subscribed_subject",
    "is_paid",
    "subscription_expiry",
    "payment_id",
)


class User(OrderedMixin, Base):
    __tablename__ = "portal_users"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=False)
    mobile = Column(String, nullable=False, default="")
    role = Column(String, nullable=False, default=Role.STUDENT.value)
    is_blocked = Column(Boolean, nullable=False, default=False)
    show_mobile = Column(Boolean, nullable=True)  # staff only: show number on public pages
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Student only (None for ADMIN / TEACHER)
    class_grade = Column(String, nullable=True)
    subscription_type = Column(String, nullable=True)
    # CLASS_WISE purchases cover one subject of the class; None = whole class
    subscribed_subject = Column(String, nullable=True)
    is_paid = Column(Boolean, nullable=True)
    subscription_expiry = Column(DateTime(timezone=True), nullable=True)
    payment_id = Column(String, nullable=True)

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT
