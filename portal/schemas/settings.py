from pydantic import BaseModel, field_validator

from portal.models.enums import SETTINGS_ID, LogoPlacement, WatermarkField


def _dedupe(fields: list[WatermarkField] | None) -> list[WatermarkField] | None:
    if fields is None:
        return None
    seen: list[WatermarkField] = []
    for f in fields:
        if f not in seen:
            seen.append(f)
    return seen


class SettingsCreate(BaseModel):
    """Full settings row; defaults are the first-start branding."""

    id: str = SETTINGS_ID
    institution_name: str = "Grow-up Coaching Center"
    admin_address: str = "123 Education Lane, Knowledge City"
    show_admin_address: bool = True
    admin_mobile: str = "9876543210"
    show_admin_mobile: bool = True
    logo_url: str | None = None
    logo_placement: LogoPlacement = LogoPlacement.HEADER
    enable_watermark: bool = True
    watermark_fields: list[WatermarkField] = [WatermarkField.NAME, WatermarkField.MOBILE]
    enable_ads: bool = True
    ad_mob_id: str | None = None

    model_config = {"extra": "forbid"}

    @field_validator("id")
    @classmethod
    def singleton_id(cls, v: str) -> str:
        if v != SETTINGS_ID:
            raise ValueError(f"settings id must be {SETTINGS_ID!r}")
        return v

    @field_validator("watermark_fields")
    @classmethod
    def dedupe_fields(cls, v: list[WatermarkField]) -> list[WatermarkField]:
        return _dedupe(v)


class SettingsUpdate(BaseModel):
    institution_name: str | None = None
    admin_address: str | None = None
    show_admin_address: bool | None = None
    admin_mobile: str | None = None
    show_admin_mobile: bool | None = None
    logo_url: str | None = None
    logo_placement: LogoPlacement | None = None
    enable_watermark: bool | None = None
    watermark_fields: list[WatermarkField] | None = None
    enable_ads: bool | None = None
    ad_mob_id: str | None = None

    model_config = {"extra": "forbid"}

    @field_validator("watermark_fields")
    @classmethod
    def dedupe_fields(cls, v: list[WatermarkField] | None) -> list[WatermarkField] | None:
        return _dedupe(v)
