"""
Admin API: generic collection CRUD over the Store, audit trail, settings, stats.
Order: /audit, /settings and /stats before /{collection}.
"""
from datetime import datetime
from enum import Enum
from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from portal.access import can_read
from portal.api.deps import get_staff_user
from portal.db.session import get_db
from portal.models.enums import Collection, Role
from portal.models.user import User
from portal.schemas.audit import AuditLogOut
from portal.services.app_settings.settings_service import SettingsRegistry
from portal.services.audit.service import AuditService
from portal.services.errors import InvalidField, NotFound, Unauthorized
from portal.services.identity.credentials import default_verifier
from portal.services.identity.service import IdentityService
from portal.services.store.service import Store

router = APIRouter(prefix="/admin", tags=["admin"])

# never serialized
_HIDDEN_COLUMNS = {"password_hash", "seq"}


def _collection(name: str) -> Collection:
    try:
        collection = Collection(name.upper())
    except ValueError:
        raise NotFound(f"Unknown collection {name}")
    if collection == Collection.AUDIT_LOG:
        raise NotFound(f"Unknown collection {name}")
    return collection


def _row_to_dict(row) -> dict[str, Any]:
    out = {}
    for column in row.__table__.columns:
        if column.key in _HIDDEN_COLUMNS:
            continue
        value = getattr(row, column.key)
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        out[column.key] = value
    return out


def _require_read(user: User, collection: Collection) -> None:
    if not can_read(user.role, collection):
        raise Unauthorized()


def _hash_password(payload: dict[str, Any]) -> dict[str, Any]:
    payload = dict(payload)
    if "password_hash" in payload:
        raise InvalidField("password_hash: set a password instead")
    password = payload.pop("password", None)
    if password is not None:
        if not str(password).strip():
            raise InvalidField("password: may not be empty")
        payload["password_hash"] = default_verifier.hash(password)
    return payload


# ---------- Audit ----------
@router.get("/audit", response_model=list[AuditLogOut])
def audit_recent(
    limit: int = Query(50, ge=1, le=1000),
    db: Session = Depends(get_db),
    user: User = Depends(get_staff_user),
):
    _require_read(user, Collection.AUDIT_LOG)
    return list(AuditService(db).recent(limit))


# ---------- Settings ----------
@router.get("/settings")
def settings_get(db: Session = Depends(get_db), user: User = Depends(get_staff_user)):
    return _row_to_dict(SettingsRegistry(db).get())


@router.put("/settings")
def settings_update(
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_staff_user),
):
    return _row_to_dict(SettingsRegistry(db).update(payload, user.id))


# ---------- Stats ----------
@router.get("/stats")
def stats(db: Session = Depends(get_db), user: User = Depends(get_staff_user)):
    if user.role != Role.ADMIN.value:
        raise Unauthorized()
    store = Store(db)
    students = [u for u in store.get_all(Collection.USERS) if u.role == Role.STUDENT.value]
    return {
        "users": store.count(Collection.USERS),
        "students": len(students),
        "paid_students": sum(1 for u in students if u.is_paid),
        "content": store.count(Collection.CONTENT),
        "payments": store.count(Collection.PAYMENTS),
        "audit_entries": AuditService(db).count(),
    }


# ---------- Collections ----------
@router.get("/{collection}")
def collection_list(collection: str, db: Session = Depends(get_db), user: User = Depends(get_staff_user)):
    target = _collection(collection)
    _require_read(user, target)
    return [_row_to_dict(row) for row in Store(db).get_all(target)]


@router.get("/{collection}/{entity_id}")
def collection_get(
    collection: str,
    entity_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_staff_user),
):
    target = _collection(collection)
    _require_read(user, target)
    row = Store(db).get_by_id(target, entity_id)
    if row is None:
        raise NotFound(f"{target.value} {entity_id} not found")
    return _row_to_dict(row)


@router.post("/{collection}", status_code=201)
def collection_create(
    collection: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_staff_user),
):
    target = _collection(collection)
    if target == Collection.USERS:
        payload = _hash_password(payload)
    return _row_to_dict(Store(db).create(target, payload, actor=user))


@router.patch("/{collection}/{entity_id}")
def collection_update(
    collection: str,
    entity_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_staff_user),
):
    target = _collection(collection)
    if target == Collection.USERS:
        payload = _hash_password(payload)
    row = Store(db).update(target, entity_id, payload, actor=user)
    if target == Collection.USERS and row.is_blocked:
        IdentityService(db).logout_all(row.id)
    return _row_to_dict(row)


@router.delete("/{collection}/{entity_id}")
def collection_delete(
    collection: str,
    entity_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_staff_user),
):
    target = _collection(collection)
    deleted = Store(db).delete(target, entity_id, actor=user)
    if target == Collection.USERS and deleted:
        IdentityService(db).logout_all(entity_id)
    return {"deleted": deleted}
