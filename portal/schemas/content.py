from datetime import datetime

from pydantic import BaseModel, field_validator

from portal.access.config import get_class_grades
from portal.models.enums import ContentType


def _check_grade(v: str | None) -> str | None:
    if v is None:
        return v
    v = str(v).strip()
    if v not in get_class_grades():
        raise ValueError(f"unknown class grade: {v}")
    return v


class ContentCreate(BaseModel):
    id: str | None = None
    title: str
    description: str | None = None
    type: ContentType
    url: str
    uploaded_by: str | None = None
    class_grade: str
    subject: str
    chapter: str
    topic: str | None = None
    is_watermarked: bool = True
    is_visible: bool = True
    is_downloadable: bool = True

    model_config = {"extra": "forbid"}

    @field_validator("class_grade")
    @classmethod
    def check_grade(cls, v: str) -> str:
        return _check_grade(v)


class ContentUpdate(BaseModel):
    """Counters (views, downloads) are not part of the update surface."""

    title: str | None = None
    description: str | None = None
    type: ContentType | None = None
    url: str | None = None
    class_grade: str | None = None
    subject: str | None = None
    chapter: str | None = None
    topic: str | None = None
    is_watermarked: bool | None = None
    is_visible: bool | None = None
    is_downloadable: bool | None = None

    model_config = {"extra": "forbid"}

    @field_validator("class_grade")
    @classmethod
    def check_grade(cls, v: str | None) -> str | None:
        return _check_grade(v)


class ContentOut(BaseModel):
    id: str
    title: str
    description: str | None = None
    type: ContentType
    url: str
    uploaded_by: str | None = None
    class_grade: str
    subject: str
    chapter: str
    topic: str | None = None
    is_watermarked: bool
    is_visible: bool
    is_downloadable: bool
    views: int
    downloads: int
    created_at: datetime

    model_config = {"from_attributes": True}
