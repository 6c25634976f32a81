from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from portal.db.base import Base, OrderedMixin


class Content(OrderedMixin, Base):
    __tablename__ = "portal_content"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False)  # ContentType
    url = Column(String, nullable=False)
    # Weak reference: uploader may be deleted, content stays
    uploaded_by = Column(String, nullable=True, index=True)
    class_grade = Column(String, nullable=False, index=True)
    subject = Column(String, nullable=False)
    chapter = Column(String, nullable=False)
    topic = Column(String, nullable=True)
    is_watermarked = Column(Boolean, nullable=False, default=True)
    is_visible = Column(Boolean, nullable=False, default=True)
    is_downloadable = Column(Boolean, nullable=False, default=True)
    views = Column(Integer, nullable=False, default=0)
    downloads = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
