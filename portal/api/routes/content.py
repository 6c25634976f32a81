"""
Content routes for signed-in users.
Students behind the payment wall get 402 with the amount they owe.
"""
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from portal.access import can_download, can_view, visible_ads, visible_content, watermark_payload
from portal.api.deps import get_current_user
from portal.db.session import get_db
from portal.models.enums import AdPlacement, Collection
from portal.models.user import User
from portal.schemas.content import ContentOut
from portal.services.app_settings.settings_service import SettingsRegistry
from portal.services.errors import NotFound, Unauthorized
from portal.services.store.service import Store
from portal.services.subscriptions.service import SubscriptionGate

router = APIRouter(prefix="/content", tags=["content"])


def _payment_wall(db: Session, user: User) -> JSONResponse | None:
    gate = SubscriptionGate(db)
    if not gate.requires_payment(user):
        return None
    return JSONResponse(
        status_code=402,
        content={"detail": "An active subscription is required", "amount": gate.required_amount(user)},
    )


def _visible_item(db: Session, user: User, content_id: str):
    item = Store(db).get_by_id(Collection.CONTENT, content_id)
    if item is None or not can_view(user, item):
        raise NotFound("Content not found")
    return item


@router.get("")
def list_content(
    placement: AdPlacement = AdPlacement.CONTENT,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    wall = _payment_wall(db, user)
    if wall is not None:
        return wall
    store = Store(db)
    items = visible_content(user, store.get_all(Collection.CONTENT))
    app_settings = SettingsRegistry(db).get()
    ads = visible_ads(app_settings, store.get_all(Collection.ADS), placement.value)
    return {
        "items": [ContentOut.model_validate(i).model_dump(mode="json") for i in items],
        "ads": [{"id": a.id, "title": a.title, "image_url": a.image_url, "link_url": a.link_url} for a in ads],
    }


@router.get("/{content_id}")
def view_content(content_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    wall = _payment_wall(db, user)
    if wall is not None:
        return wall
    item = _visible_item(db, user, content_id)
    Store(db).record_view(item.id)
    db.refresh(item)
    return ContentOut.model_validate(item).model_dump(mode="json")


@router.post("/{content_id}/download")
def download_content(content_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    wall = _payment_wall(db, user)
    if wall is not None:
        return wall
    item = _visible_item(db, user, content_id)
    if not can_download(user, item):
        raise Unauthorized("This item cannot be downloaded")
    Store(db).record_download(item.id)
    return {
        "url": item.url,
        "watermark": watermark_payload(user, item, SettingsRegistry(db).get()),
    }


@router.post("", response_model=ContentOut, status_code=201)
def upload_content(
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Teachers and admins; uploaded_by is always the caller."""
    fields = {**payload, "uploaded_by": user.id}
    return Store(db).create(Collection.CONTENT, fields, actor=user)


@router.patch("/{content_id}", response_model=ContentOut)
def update_content(
    content_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return Store(db).update(Collection.CONTENT, content_id, payload, actor=user)


@router.delete("/{content_id}")
def delete_content(content_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"deleted": Store(db).delete(Collection.CONTENT, content_id, actor=user)}
