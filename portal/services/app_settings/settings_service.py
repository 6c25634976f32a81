"""Institution settings (branding, watermark and ad policy): one row, id='default'."""
import logging
from typing import Any

from sqlalchemy.orm import Session

from portal.access.policy import SYSTEM
from portal.models.app_settings import AppSettings
from portal.models.enums import SETTINGS_ID, Collection, Role
from portal.models.user import User
from portal.schemas.settings import SettingsCreate
from portal.services.errors import DuplicateKey, Unauthorized
from portal.services.store.service import Store

logger = logging.getLogger(__name__)


class SettingsRegistry:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.store = Store(db)

    def get(self) -> AppSettings:
        """Always a fully populated row; created with defaults on first read."""
        row = self.store.get_by_id(Collection.SETTINGS, SETTINGS_ID)
        if row:
            return row
        try:
            return self.store.create(Collection.SETTINGS, SettingsCreate().model_dump(), actor=SYSTEM)
        except DuplicateKey:
            # created by a concurrent first read
            return self.store.get_by_id(Collection.SETTINGS, SETTINGS_ID)

    def update(self, data: dict[str, Any], actor_id: str | None) -> AppSettings:
        actor = self.db.get(User, actor_id) if actor_id else None
        if actor is None or actor.role != Role.ADMIN or actor.is_blocked:
            logger.warning("settings_update_denied", extra={"actor_id": actor_id})
            raise Unauthorized("Only an administrator can change settings")
        self.get()
        return self.store.update(Collection.SETTINGS, SETTINGS_ID, data, actor=actor)

    def as_dict(self) -> dict[str, Any]:
        row = self.get()
        return {
            "institution_name": row.institution_name,
            "admin_address": row.admin_address if row.show_admin_address else None,
            "admin_mobile": row.admin_mobile if row.show_admin_mobile else None,
            "show_admin_address": row.show_admin_address,
            "show_admin_mobile": row.show_admin_mobile,
            "logo_url": row.logo_url,
            "logo_placement": row.logo_placement,
            "enable_watermark": row.enable_watermark,
            "watermark_fields": list(row.watermark_fields or []),
            "enable_ads": row.enable_ads,
            "ad_mob_id": row.ad_mob_id if row.enable_ads else None,
            "updated_at": row.updated_at.isoformat() if row.updated_at else None,
        }
