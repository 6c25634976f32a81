from uuid import uuid4

from sqlalchemy import Boolean, Column, String

from portal.db.base import Base, OrderedMixin


class Ad(OrderedMixin, Base):
    __tablename__ = "portal_ads"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    title = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    link_url = Column(String, nullable=False)
    placement = Column(String, nullable=False, default="CONTENT")  # AdPlacement
    active = Column(Boolean, nullable=False, default=True)
