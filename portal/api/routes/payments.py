"""
Subscription checkout and the payment gateway callback.
The callback authenticates with the shared payment_webhook_secret header.
"""
import hmac
import logging

from fastapi import APIRouter, Body, Depends, Header
from sqlalchemy.orm import Session

from portal.api.deps import get_current_user
from portal.core.config import settings
from portal.db.session import get_db
from portal.models.payment import Payment
from portal.models.user import User
from portal.schemas.payments import CheckoutRequest, GatewayConfirmation, PaymentOut
from portal.services.errors import Unauthorized
from portal.services.subscriptions.service import SubscriptionGate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/status")
def subscription_status(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    gate = SubscriptionGate(db)
    requires_payment = gate.requires_payment(user)
    return {
        "active": not requires_payment,
        "requires_payment": requires_payment,
        "amount": gate.required_amount(user) if requires_payment else None,
        "subscription_type": user.subscription_type,
        "subscription_expiry": user.subscription_expiry.isoformat() if user.subscription_expiry else None,
    }


@router.post("/checkout", response_model=PaymentOut, status_code=201)
def checkout(
    body: CheckoutRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return SubscriptionGate(db).start_checkout(user, body.target_class if body else None)


@router.get("/mine", response_model=list[PaymentOut])
def my_payments(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return db.query(Payment).filter(Payment.user_id == user.id).order_by(Payment.seq.desc()).all()


@router.post("/{payment_id}/callback")
def gateway_callback(
    payment_id: str,
    body: GatewayConfirmation = Body(...),
    x_webhook_secret: str | None = Header(default=None),
    db: Session = Depends(get_db),
):
    expected = settings.payment_webhook_secret
    if not expected or not x_webhook_secret or not hmac.compare_digest(expected, x_webhook_secret):
        logger.warning("payment_callback_rejected", extra={"payment_id": payment_id})
        raise Unauthorized("Invalid gateway signature")
    gate = SubscriptionGate(db)
    if body.success:
        activated = gate.confirm_payment(payment_id, body.gateway_ref)
        return {"status": "SUCCESS", "activated": activated}
    gate.fail_payment(payment_id, body.gateway_ref)
    return {"status": "FAILED", "activated": False}
