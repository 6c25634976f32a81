from pydantic import BaseModel, Field

from portal.models.enums import AdPlacement, SubscriptionType


class PlanCreate(BaseModel):
    id: str | None = None
    name: str
    description: str | None = None
    type: SubscriptionType
    price: int = Field(..., ge=0)
    duration_days: int = Field(365, gt=0)
    active: bool = True

    model_config = {"extra": "forbid"}


class PlanUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    type: SubscriptionType | None = None
    price: int | None = Field(None, ge=0)
    duration_days: int | None = Field(None, gt=0)
    active: bool | None = None

    model_config = {"extra": "forbid"}


class AdCreate(BaseModel):
    id: str | None = None
    title: str
    image_url: str | None = None
    link_url: str
    placement: AdPlacement = AdPlacement.CONTENT
    active: bool = True

    model_config = {"extra": "forbid"}


class AdUpdate(BaseModel):
    title: str | None = None
    image_url: str | None = None
    link_url: str | None = None
    placement: AdPlacement | None = None
    active: bool | None = None

    model_config = {"extra": "forbid"}
