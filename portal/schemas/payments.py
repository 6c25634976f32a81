from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from portal.access.config import get_class_grades
from portal.models.enums import PaymentStatus, SubscriptionType


def _check_grade(v: str | None) -> str | None:
    if v is None:
        return v
    v = str(v).strip()
    if v not in get_class_grades():
        raise ValueError(f"unknown class grade: {v}")
    return v


class PaymentCreate(BaseModel):
    """New records start PENDING or FAILED; SUCCESS comes from gateway confirmation."""

    id: str | None = None
    user_id: str
    amount: int = Field(..., ge=0)
    status: PaymentStatus = PaymentStatus.PENDING
    subscription_type: SubscriptionType
    target_class: str | None = None
    gateway_ref: str | None = None

    model_config = {"extra": "forbid"}

    @field_validator("status")
    @classmethod
    def no_manual_success(cls, v: PaymentStatus) -> PaymentStatus:
        if v == PaymentStatus.SUCCESS:
            raise ValueError("SUCCESS is set by gateway confirmation only")
        return v

    @field_validator("target_class")
    @classmethod
    def check_grade(cls, v: str | None) -> str | None:
        return _check_grade(v)


class PaymentUpdate(BaseModel):
    """Manual corrections only; SUCCESS comes from gateway confirmation."""

    status: PaymentStatus | None = None
    gateway_ref: str | None = None

    model_config = {"extra": "forbid"}

    @field_validator("status")
    @classmethod
    def no_manual_success(cls, v: PaymentStatus | None) -> PaymentStatus | None:
        if v == PaymentStatus.SUCCESS:
            raise ValueError("SUCCESS is set by gateway confirmation only")
        return v


class PaymentOut(BaseModel):
    id: str
    user_id: str
    amount: int
    status: PaymentStatus
    subscription_type: SubscriptionType
    target_class: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CheckoutRequest(BaseModel):
    target_class: str | None = None

    @field_validator("target_class")
    @classmethod
    def check_grade(cls, v: str | None) -> str | None:
        return _check_grade(v)


class GatewayConfirmation(BaseModel):
    gateway_ref: str | None = None
    success: bool = True
