"""
Store: keyed-collection persistence for every portal entity.

Responsibilities:
- Validation of incoming fields against the collection schema
- Authorization of the explicit acting identity before any write
- Uniqueness (email, explicit ids) and insertion order (seq)
- Audit entries for privileged mutations, written after the data commit
"""
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from portal.access.policy import SystemActor, check_admin_removal, check_role_change, require_manage
from portal.models.ad import Ad
from portal.models.app_settings import AppSettings
from portal.models.audit_log import AuditLog
from portal.models.content import Content
from portal.models.enums import AuditAction, Collection, Role
from portal.models.payment import Payment
from portal.models.plan import Plan
from portal.models.user import STUDENT_FIELDS, User
from portal.schemas.content import ContentCreate, ContentUpdate
from portal.schemas.payments import PaymentCreate, PaymentUpdate
from portal.schemas.plans import AdCreate, AdUpdate, PlanCreate, PlanUpdate
from portal.schemas.settings import SettingsCreate, SettingsUpdate
from portal.schemas.users import UserCreate, UserUpdate
from portal.services.audit.service import AuditService
from portal.services.errors import DuplicateKey, InvalidField, InvalidOperation, NotFound
from portal.utils.metrics import audit_write_failures_total, store_mutations_total

logger = logging.getLogger(__name__)

MODELS: dict[Collection, type] = {
    Collection.USERS: User,
    Collection.CONTENT: Content,
    Collection.PLANS: Plan,
    Collection.ADS: Ad,
    Collection.SETTINGS: AppSettings,
    Collection.PAYMENTS: Payment,
    Collection.AUDIT_LOG: AuditLog,
}

CREATE_SCHEMAS: dict[Collection, type[BaseModel]] = {
    Collection.USERS: UserCreate,
    Collection.CONTENT: ContentCreate,
    Collection.PLANS: PlanCreate,
    Collection.ADS: AdCreate,
    Collection.SETTINGS: SettingsCreate,
    Collection.PAYMENTS: PaymentCreate,
}

UPDATE_SCHEMAS: dict[Collection, type[BaseModel]] = {
    Collection.USERS: UserUpdate,
    Collection.CONTENT: ContentUpdate,
    Collection.PLANS: PlanUpdate,
    Collection.ADS: AdUpdate,
    Collection.SETTINGS: SettingsUpdate,
    Collection.PAYMENTS: PaymentUpdate,
}

UNIQUE_FIELDS: dict[Collection, tuple[str, ...]] = {
    Collection.USERS: ("email",),
}

_ENTITY_PREFIX = {
    Collection.USERS: "USER",
    Collection.CONTENT: "CONTENT",
    Collection.PLANS: "PLAN",
    Collection.ADS: "AD",
    Collection.SETTINGS: "SETTINGS",
    Collection.PAYMENTS: "PAYMENT",
}

# fields never echoed into audit details
_SECRET_FIELDS = {"password_hash"}

_seq_lock = threading.Lock()


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _validate(schema: type[BaseModel], fields: dict[str, Any]) -> BaseModel:
    try:
        return schema.model_validate(fields)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidField(problems or "Invalid data") from e


class Store:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self, collection: Collection) -> list:
        """Every live row of the collection in insertion order."""
        model = MODELS[Collection(collection)]
        return self.db.query(model).order_by(model.seq).all()

    def get_by_id(self, collection: Collection, entity_id: str):
        return self.db.get(MODELS[Collection(collection)], entity_id)

    def find_by_unique_field(self, collection: Collection, field: str, value: Any):
        collection = Collection(collection)
        if field != "id" and field not in UNIQUE_FIELDS.get(collection, ()):
            raise InvalidField(f"{field} is not a unique field of {collection.value}")
        if field == "email" and isinstance(value, str):
            value = value.strip().lower()
        model = MODELS[collection]
        return self.db.query(model).filter(getattr(model, field) == value).one_or_none()

    def count(self, collection: Collection) -> int:
        model = MODELS[Collection(collection)]
        return self.db.query(func.count(model.id)).scalar() or 0

    def count_active_admins(self) -> int:
        return (
            self.db.query(func.count(User.id))
            .filter(User.role == Role.ADMIN.value, User.is_blocked.is_(False))
            .scalar()
            or 0
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, collection: Collection, fields: dict[str, Any], actor: User | SystemActor):
        collection = Collection(collection)
        require_manage(actor, collection)
        values = {
            k: _plain(v)
            for k, v in _validate(CREATE_SCHEMAS[collection], fields).model_dump().items()
        }
        if values.get("id") is None:
            values.pop("id", None)
        if collection == Collection.USERS:
            self._normalize_user_fields(values, values.get("role"))

        model = MODELS[collection]
        if "id" in values and self.db.get(model, values["id"]) is not None:
            raise DuplicateKey(f"{collection.value} {values['id']} already exists")
        for field in UNIQUE_FIELDS.get(collection, ()):
            if self.find_by_unique_field(collection, field, values[field]) is not None:
                raise DuplicateKey(f"A user with this {field} already exists")

        with _seq_lock:
            values["seq"] = self._next_seq(model)
            entity = model(**values)
            self.db.add(entity)
            try:
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise DuplicateKey(f"{collection.value} already exists") from e
        self.db.refresh(entity)

        store_mutations_total.labels(collection=collection.value, operation="create").inc()
        logger.info(
            "store_created",
            extra={"collection": collection.value, "entity_id": entity.id, "actor_id": self._actor_id(actor)},
        )
        self._audit(
            actor,
            collection,
            AuditAction(f"{_ENTITY_PREFIX[collection]}_CREATE"),
            entity.id,
            self._describe_create(collection, entity),
        )
        return entity

    def update(
        self,
        collection: Collection,
        entity_id: str,
        fields: dict[str, Any],
        actor: User | SystemActor,
    ):
        collection = Collection(collection)
        require_manage(actor, collection)
        validated = _validate(UPDATE_SCHEMAS[collection], fields)
        changes = {k: _plain(v) for k, v in validated.model_dump(exclude_unset=True).items()}

        model = MODELS[collection]
        columns = model.__table__.c
        for key, value in changes.items():
            if value is None and not columns[key].nullable:
                raise InvalidField(f"{key}: may not be empty")

        entity = self.db.get(model, entity_id)
        if entity is None:
            raise NotFound(f"{collection.value} {entity_id} not found")

        action = AuditAction(f"{_ENTITY_PREFIX[collection]}_UPDATE")
        if collection == Collection.USERS:
            action = self._prepare_user_update(entity, changes, actor)
        if collection == Collection.SETTINGS:
            changes["updated_at"] = datetime.now(timezone.utc)

        before = {key: getattr(entity, key) for key in changes}
        for key, value in changes.items():
            setattr(entity, key, value)
        self.db.add(entity)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateKey(f"{collection.value} update violates a unique field") from e
        self.db.refresh(entity)

        store_mutations_total.labels(collection=collection.value, operation="update").inc()
        logger.info(
            "store_updated",
            extra={"collection": collection.value, "entity_id": entity.id, "actor_id": self._actor_id(actor)},
        )
        self._audit(actor, collection, action, entity.id, self._describe_changes(before, changes))
        return entity

    def delete(self, collection: Collection, entity_id: str, actor: User | SystemActor) -> bool:
        """Idempotent. Returns True if a row was removed."""
        collection = Collection(collection)
        require_manage(actor, collection)
        if collection == Collection.SETTINGS:
            raise InvalidOperation("Settings cannot be deleted")

        entity = self.db.get(MODELS[collection], entity_id)
        if entity is None:
            return False
        if collection == Collection.USERS and not entity.is_blocked:
            check_admin_removal(entity, self.count_active_admins())

        label = getattr(entity, "email", None) or getattr(entity, "title", None) or getattr(entity, "name", None)
        self.db.delete(entity)
        self.db.commit()

        store_mutations_total.labels(collection=collection.value, operation="delete").inc()
        logger.info(
            "store_deleted",
            extra={"collection": collection.value, "entity_id": entity_id, "actor_id": self._actor_id(actor)},
        )
        self._audit(
            actor,
            collection,
            AuditAction(f"{_ENTITY_PREFIX[collection]}_DELETE"),
            entity_id,
            f"deleted {label}" if label else "deleted",
        )
        return True

    def record_view(self, content_id: str) -> None:
        self._increment(Content.views, content_id)

    def record_download(self, content_id: str) -> None:
        self._increment(Content.downloads, content_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _increment(self, column, content_id: str) -> None:
        """Atomic counter bump; counters never go down."""
        result = self.db.execute(
            update(Content)
            .where(Content.id == content_id)
            .values({column: column + 1})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFound(f"CONTENT {content_id} not found")
        self.db.commit()
        cached = self.db.get(Content, content_id)
        if cached is not None:
            self.db.refresh(cached)

    def _next_seq(self, model) -> int:
        return self.db.execute(select(func.coalesce(func.max(model.seq), 0))).scalar() + 1

    @staticmethod
    def _normalize_user_fields(values: dict[str, Any], role: str | None) -> None:
        """Student-only attributes exist for students only."""
        if role == Role.STUDENT.value:
            if values.get("is_paid") is None:
                values["is_paid"] = False
            return
        for field in STUDENT_FIELDS:
            values[field] = None

    def _prepare_user_update(self, user: User, changes: dict[str, Any], actor: User | SystemActor) -> AuditAction:
        action = AuditAction.USER_UPDATE
        if "email" in changes and changes["email"] != user.email:
            if self.find_by_unique_field(Collection.USERS, "email", changes["email"]) is not None:
                raise DuplicateKey("A user with this email already exists")

        new_role = changes.get("role", user.role)
        if "role" in changes and new_role != user.role:
            check_role_change(actor.role, user, new_role, self.count_active_admins())
            action = AuditAction.USER_ROLE_CHANGE
        else:
            changes.pop("role", None)

        if changes.get("is_blocked") is True and not user.is_blocked:
            check_admin_removal(user, self.count_active_admins())

        if new_role == Role.STUDENT.value:
            if user.role != Role.STUDENT.value and changes.get("is_paid") is None:
                changes["is_paid"] = False
        else:
            for field in STUDENT_FIELDS:
                changes[field] = None

        if action == AuditAction.USER_UPDATE and "is_blocked" in changes and changes["is_blocked"] != user.is_blocked:
            action = AuditAction.USER_BLOCK if changes["is_blocked"] else AuditAction.USER_UNBLOCK
        return action

    @staticmethod
    def _actor_id(actor: User | SystemActor) -> str:
        return actor.id

    @staticmethod
    def _describe_create(collection: Collection, entity) -> str:
        if collection == Collection.USERS:
            return f"created {entity.role} {entity.email}"
        if collection == Collection.PAYMENTS:
            return f"payment {entity.status} amount={entity.amount} user={entity.user_id}"
        label = getattr(entity, "title", None) or getattr(entity, "name", None) or getattr(entity, "institution_name", None)
        return f"created {label}" if label else "created"

    @staticmethod
    def _describe_changes(before: dict[str, Any], changes: dict[str, Any]) -> str:
        parts = []
        for key, new in changes.items():
            if key in _SECRET_FIELDS or key == "updated_at":
                continue
            old = before.get(key)
            if old == new:
                continue
            parts.append(f"{key}: {old} -> {new}")
        return "; ".join(parts) or "no field changed"

    def _audit(
        self,
        actor: User | SystemActor,
        collection: Collection,
        action: AuditAction,
        entity_id: str | None,
        details: str,
    ) -> None:
        """Data is already committed; an audit failure is logged, never raised."""
        try:
            AuditService(self.db).record(
                self._actor_id(actor),
                action,
                details,
                entity_type=collection.value,
                entity_id=entity_id,
            )
        except SQLAlchemyError:
            self.db.rollback()
            audit_write_failures_total.inc()
            logger.exception(
                "audit_write_failed",
                extra={"collection": collection.value, "entity_id": entity_id, "action": action.value},
            )
