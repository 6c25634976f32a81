from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from portal.db.base import Base


class LoginSession(Base):
    __tablename__ = "portal_login_sessions"

    id = Column(String, primary_key=True)  # random token id, signed before leaving the server
    user_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="active")  # active / revoked
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    revoked_at = Column(DateTime(timezone=True), nullable=True)
