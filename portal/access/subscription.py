"""
Subscription state of a student, derived only from the row itself (no I/O).
"""
from __future__ import annotations

from datetime import datetime, timezone


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def subscription_active(student, now: datetime | None = None) -> bool:
    """Paid and not past expiry. A missing expiry means the grant does not lapse."""
    if not getattr(student, "is_paid", False):
        return False
    expiry = as_utc(getattr(student, "subscription_expiry", None))
    if expiry is None:
        return True
    return expiry > (now or datetime.now(timezone.utc))
