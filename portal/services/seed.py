"""
First-start data: settings row, default plans, staff accounts, one demo item.
Each block runs only when its collection is empty, so calling seed() twice is harmless.
"""
import logging

from sqlalchemy.orm import Session

from portal.access.policy import SYSTEM
from portal.core.config import settings
from portal.models.enums import Collection, ContentType, Role, SubscriptionType
from portal.services.app_settings.settings_service import SettingsRegistry
from portal.services.identity.credentials import CredentialVerifier, default_verifier
from portal.services.store.service import Store

logger = logging.getLogger(__name__)

DEFAULT_PLANS = [
    {
        "name": "Single Class",
        "description": "All materials of one class and subject",
        "type": SubscriptionType.CLASS_WISE,
        "price": 500,
        "duration_days": 365,
    },
    {
        "name": "Overall Access",
        "description": "Every subject of your class",
        "type": SubscriptionType.OVERALL,
        "price": 2000,
        "duration_days": 365,
    },
]


def seed(db: Session, verifier: CredentialVerifier | None = None) -> None:
    verifier = verifier or default_verifier
    store = Store(db)
    SettingsRegistry(db).get()

    if store.count(Collection.PLANS) == 0:
        for plan in DEFAULT_PLANS:
            store.create(Collection.PLANS, plan, actor=SYSTEM)
        logger.info("default_plans_seeded", extra={"reason": f"count={len(DEFAULT_PLANS)}"})

    if store.count(Collection.USERS) == 0:
        staff = [
            (settings.seed_admin_email, settings.seed_admin_password, "Administrator", Role.ADMIN),
            (settings.seed_teacher_email, settings.seed_teacher_password, "Faculty", Role.TEACHER),
        ]
        for email, password, name, role in staff:
            if not password:
                logger.warning("seed_account_skipped", extra={"reason": f"no password for {role.value}"})
                continue
            store.create(
                Collection.USERS,
                {
                    "email": email,
                    "password_hash": verifier.hash(password),
                    "name": name,
                    "role": role,
                    "show_mobile": role == Role.ADMIN,
                },
                actor=SYSTEM,
            )

    if store.count(Collection.CONTENT) == 0:
        admin = next((u for u in store.get_all(Collection.USERS) if u.role == Role.ADMIN), None)
        store.create(
            Collection.CONTENT,
            {
                "title": "Introduction to Calculus",
                "type": ContentType.VIDEO,
                "url": "https://www.youtube.com/watch?v=dummy",
                "uploaded_by": admin.id if admin else None,
                "class_grade": "12",
                "subject": "Maths",
                "chapter": "Calculus",
                "is_watermarked": True,
            },
            actor=SYSTEM,
        )
