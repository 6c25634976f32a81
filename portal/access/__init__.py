"""
Access policy (internal library): pure decisions over identities, content and settings.
Persistence and auditing live in portal.services; this package never does I/O.
"""
from portal.access.policy import (
    SYSTEM,
    can_download,
    can_manage,
    can_read,
    can_view,
    check_admin_removal,
    check_role_change,
    require_manage,
    visible_ads,
    visible_content,
    watermark_payload,
)
from portal.access.subscription import subscription_active

__all__ = [
    "SYSTEM",
    "can_download",
    "can_manage",
    "can_read",
    "can_view",
    "check_admin_removal",
    "check_role_change",
    "require_manage",
    "subscription_active",
    "visible_ads",
    "visible_content",
    "watermark_payload",
]
