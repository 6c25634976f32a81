"""
Access config: typed wrappers over portal.core.config for grades, prices and guards.
"""
from __future__ import annotations

from portal.core.config import settings


def get_class_grades() -> list[str]:
    return settings.class_grades_list


def get_overall_fallback_price() -> int:
    return getattr(settings, "overall_fallback_price", 2000)


def get_class_wise_fallback_price() -> int:
    return getattr(settings, "class_wise_fallback_price", 500)


def get_protect_last_admin() -> bool:
    return getattr(settings, "protect_last_admin", True)


def get_audit_log_cap() -> int:
    return getattr(settings, "audit_log_cap", 1000)
