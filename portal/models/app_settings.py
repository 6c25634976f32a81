from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, String

from portal.db.base import Base, OrderedMixin
from portal.models.enums import SETTINGS_ID


class AppSettings(OrderedMixin, Base):
    """Institution branding, watermark and ad policy (single row, id='default')."""

    __tablename__ = "portal_settings"

    id = Column(String, primary_key=True, default=SETTINGS_ID)
    institution_name = Column(String, nullable=False)
    admin_address = Column(String, nullable=False, default="")
    show_admin_address = Column(Boolean, nullable=False, default=True)
    admin_mobile = Column(String, nullable=False, default="")
    show_admin_mobile = Column(Boolean, nullable=False, default=True)
    logo_url = Column(String, nullable=True)
    logo_placement = Column(String, nullable=False, default="HEADER")  # LogoPlacement
    enable_watermark = Column(Boolean, nullable=False, default=True)
    watermark_fields = Column(JSON, nullable=False, default=list)  # subset of WatermarkField
    enable_ads = Column(Boolean, nullable=False, default=True)
    ad_mob_id = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
