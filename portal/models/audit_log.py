from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Text

from portal.db.base import Base, OrderedMixin


class AuditLog(OrderedMixin, Base):
    __tablename__ = "portal_audit_log"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    actor_id = Column(String, nullable=False)  # user id or "SYSTEM"
    action = Column(String, nullable=False)  # AuditAction
    entity_type = Column(String, nullable=True)
    entity_id = Column(String, nullable=True)
    details = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
