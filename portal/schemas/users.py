from datetime import datetime

from pydantic import BaseModel, field_validator

from portal.access.config import get_class_grades
from portal.models.enums import Role, SubscriptionType


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    local, _, domain = v.partition("@")
    if not local or "." not in domain:
        raise ValueError("invalid email address")
    return v


def _check_grade(v: str | None) -> str | None:
    if v is None:
        return v
    v = str(v).strip()
    if v not in get_class_grades():
        raise ValueError(f"unknown class grade: {v}")
    return v


def _only_clear_paid(v: bool | None) -> bool | None:
    if v:
        raise ValueError("is_paid is set by payment confirmation only")
    return v


class UserCreate(BaseModel):
    """
    Store-level user row. password_hash is already hashed by the identity service.
    New rows are never paid: subscription state comes from payment confirmation.
    """

    id: str | None = None
    email: str
    password_hash: str
    name: str
    mobile: str = ""
    role: Role = Role.STUDENT
    is_blocked: bool = False
    show_mobile: bool | None = None
    class_grade: str | None = None
    subscription_type: SubscriptionType | None = None
    subscribed_subject: str | None = None
    is_paid: bool | None = None

    model_config = {"extra": "forbid"}

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("class_grade")
    @classmethod
    def check_grade(cls, v: str | None) -> str | None:
        return _check_grade(v)

    @field_validator("is_paid")
    @classmethod
    def only_clear_paid(cls, v: bool | None) -> bool | None:
        return _only_clear_paid(v)


class UserUpdate(BaseModel):
    """Admin edit form. is_paid may only be cleared here; payment confirmation sets it."""

    email: str | None = None
    password_hash: str | None = None
    name: str | None = None
    mobile: str | None = None
    role: Role | None = None
    is_blocked: bool | None = None
    show_mobile: bool | None = None
    class_grade: str | None = None
    subscription_type: SubscriptionType | None = None
    subscribed_subject: str | None = None
    is_paid: bool | None = None
    subscription_expiry: datetime | None = None

    model_config = {"extra": "forbid"}

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v if v is None else _normalize_email(v)

    @field_validator("class_grade")
    @classmethod
    def check_grade(cls, v: str | None) -> str | None:
        return _check_grade(v)

    @field_validator("is_paid")
    @classmethod
    def only_clear_paid(cls, v: bool | None) -> bool | None:
        return _only_clear_paid(v)


class StudentSignup(BaseModel):
    """Public sign-up form. Unknown keys (a supplied role, is_paid...) are dropped."""

    name: str
    email: str
    mobile: str
    password: str
    class_grade: str
    subscription_type: SubscriptionType = SubscriptionType.CLASS_WISE
    subscribed_subject: str | None = None

    model_config = {"extra": "ignore"}

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("class_grade")
    @classmethod
    def check_grade(cls, v: str | None) -> str | None:
        return _check_grade(v)

    @field_validator("name", "mobile", "password")
    @classmethod
    def required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("field is required")
        return v


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    mobile: str
    role: Role
    is_blocked: bool
    created_at: datetime
    class_grade: str | None = None
    subscription_type: SubscriptionType | None = None
    subscribed_subject: str | None = None
    is_paid: bool | None = None
    subscription_expiry: datetime | None = None

    model_config = {"from_attributes": True}
