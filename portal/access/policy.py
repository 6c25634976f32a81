"""
Decision only: who may manage or read a collection, which content an identity sees,
whether it may download, what a renderer should stamp. Pure functions, no I/O.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from portal.access.config import get_protect_last_admin
from portal.access.subscription import subscription_active
from portal.models.enums import SYSTEM_ACTOR, Collection, Role, SubscriptionType, WatermarkField
from portal.services.errors import Unauthorized


class SystemActor:
    """Acting identity of non-interactive mutations: seeding, registration, gateway callbacks."""

    id = SYSTEM_ACTOR
    role = None
    is_blocked = False

    def __repr__(self) -> str:
        return "SYSTEM"


SYSTEM = SystemActor()

MANAGE_RIGHTS: dict[Role, frozenset[Collection]] = {
    Role.ADMIN: frozenset({
        Collection.USERS,
        Collection.CONTENT,
        Collection.PLANS,
        Collection.ADS,
        Collection.SETTINGS,
        Collection.PAYMENTS,
    }),
    Role.TEACHER: frozenset({Collection.CONTENT}),
    Role.STUDENT: frozenset(),
}

READ_RIGHTS: dict[Role, frozenset[Collection]] = {
    Role.ADMIN: frozenset(Collection),
    Role.TEACHER: frozenset({Collection.CONTENT, Collection.PLANS, Collection.SETTINGS, Collection.ADS}),
    # Content is further filtered by visible_content
    Role.STUDENT: frozenset({Collection.CONTENT, Collection.PLANS, Collection.SETTINGS, Collection.ADS}),
}


def _role(value) -> Role:
    return value if isinstance(value, Role) else Role(value)


def can_manage(role, collection: Collection) -> bool:
    """True if the role may create, update or delete rows of the collection."""
    return Collection(collection) in MANAGE_RIGHTS[_role(role)]


def can_read(role, collection: Collection) -> bool:
    return Collection(collection) in READ_RIGHTS[_role(role)]


def require_manage(actor, collection: Collection) -> None:
    """
    Raise Unauthorized unless the actor may mutate the collection.
    The actor is a User or SYSTEM; a missing actor is refused.
    The audit log is never writable this way.
    """
    collection = Collection(collection)
    if collection == Collection.AUDIT_LOG:
        raise Unauthorized("The audit log is append-only")
    if actor is None:
        raise Unauthorized("An acting identity is required")
    if actor is SYSTEM:
        return
    if actor.is_blocked or not can_manage(actor.role, collection):
        raise Unauthorized()


def _same_subject(a: str | None, b: str | None) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


def can_view(identity, item) -> bool:
    role = _role(identity.role)
    if role != Role.STUDENT:
        return True
    if not item.is_visible or item.class_grade != identity.class_grade:
        return False
    if identity.subscription_type == SubscriptionType.CLASS_WISE and identity.subscribed_subject:
        return _same_subject(item.subject, identity.subscribed_subject)
    return True


def visible_content(identity, items: Iterable) -> list:
    """
    Students: own class, visible only; CLASS_WISE narrows to the purchased subject
    when one is recorded. Admins and teachers: the full catalog, hidden items included.
    Order is preserved.
    """
    return [item for item in items if can_view(identity, item)]


def can_download(identity, item, now: datetime | None = None) -> bool:
    if not item.is_downloadable:
        return False
    if _role(identity.role) != Role.STUDENT:
        return True
    return can_view(identity, item) and subscription_active(identity, now)


def _guard_last_admin(target, admin_count: int) -> None:
    if (
        get_protect_last_admin()
        and _role(target.role) == Role.ADMIN
        and not target.is_blocked
        and admin_count <= 1
    ):
        raise Unauthorized("The last administrator cannot be removed or demoted")


def check_role_change(actor_role, target, new_role, admin_count: int) -> None:
    """
    Role elevation guard: only an ADMIN changes roles, and the sole remaining
    ADMIN is never demoted. admin_count is the number of ADMIN rows now.
    """
    if actor_role is None or _role(actor_role) != Role.ADMIN:
        raise Unauthorized("Only an administrator can change roles")
    if _role(new_role) == _role(target.role):
        return
    _guard_last_admin(target, admin_count)


def check_admin_removal(target, admin_count: int) -> None:
    _guard_last_admin(target, admin_count)


def watermark_payload(identity, item, app_settings) -> dict[str, str] | None:
    """
    Values a renderer should stamp on a delivered document, keyed by WatermarkField.
    None when watermarking is off globally or for the item.
    """
    if not app_settings.enable_watermark or not item.is_watermarked:
        return None
    values = {
        WatermarkField.NAME: identity.name,
        WatermarkField.MOBILE: identity.mobile,
        WatermarkField.CLASS: identity.class_grade,
    }
    payload = {}
    for field in app_settings.watermark_fields or []:
        key = WatermarkField(field)
        if values[key]:
            payload[key.value] = values[key]
    return payload


def visible_ads(app_settings, ads: Iterable, placement) -> list:
    if not app_settings.enable_ads:
        return []
    return [ad for ad in ads if ad.active and ad.placement == placement]
