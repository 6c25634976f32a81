"""
SubscriptionGate: paid/unpaid access state and the payment wall.

Payment flow:
- start_checkout: PENDING record for the amount the student owes
- confirm_payment: gateway callback, PENDING -> SUCCESS, then mark_paid
- fail_payment: PENDING -> FAILED
mark_paid is the only path that sets is_paid; it applies once per payment id.
"""
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.access.config import get_class_wise_fallback_price, get_overall_fallback_price
from portal.access.policy import SYSTEM
from portal.access.subscription import subscription_active
from portal.models.enums import AuditAction, Collection, PaymentStatus, Role, SubscriptionType
from portal.models.payment import Payment
from portal.models.plan import Plan
from portal.models.user import User
from portal.services.audit.service import AuditService
from portal.services.errors import InvalidOperation, NotFound
from portal.services.store.service import Store
from portal.utils.metrics import (
    audit_write_failures_total,
    payment_transitions_total,
    subscriptions_activated_total,
)

logger = logging.getLogger(__name__)


class SubscriptionGate:
    def __init__(self, db: Session):
        self.db = db
        self.store = Store(db)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    @staticmethod
    def is_active(student: User, now: datetime | None = None) -> bool:
        return subscription_active(student, now)

    def requires_payment(self, identity: User, now: datetime | None = None) -> bool:
        """Payment wall: only students without an active subscription hit it."""
        return identity.role == Role.STUDENT and not self.is_active(identity, now)

    def active_plan(self, subscription_type: SubscriptionType) -> Plan | None:
        """Oldest active plan of the type."""
        return (
            self.db.query(Plan)
            .filter(Plan.type == SubscriptionType(subscription_type).value, Plan.active.is_(True))
            .order_by(Plan.seq)
            .first()
        )

    def required_amount(self, student: User) -> int:
        subscription_type = SubscriptionType(student.subscription_type or SubscriptionType.CLASS_WISE)
        plan = self.active_plan(subscription_type)
        if plan is not None:
            return plan.price
        if subscription_type == SubscriptionType.OVERALL:
            return get_overall_fallback_price()
        return get_class_wise_fallback_price()

    # ------------------------------------------------------------------
    # Payment flow
    # ------------------------------------------------------------------

    def start_checkout(self, student: User, target_class: str | None = None) -> Payment:
        """Access follows the student's class, so a payment can only cover that class."""
        if student.role != Role.STUDENT:
            raise InvalidOperation("Only students buy subscriptions")
        if target_class is not None and str(target_class).strip() != student.class_grade:
            raise InvalidOperation("A subscription covers your own class only")
        payment = self.store.create(
            Collection.PAYMENTS,
            {
                "user_id": student.id,
                "amount": self.required_amount(student),
                "status": PaymentStatus.PENDING,
                "subscription_type": student.subscription_type or SubscriptionType.CLASS_WISE,
                "target_class": student.class_grade,
            },
            actor=SYSTEM,
        )
        payment_transitions_total.labels(status=PaymentStatus.PENDING.value).inc()
        logger.info("checkout_started", extra={"user_id": student.id, "payment_id": payment.id})
        return payment

    def _transition(self, payment_id: str, new_status: PaymentStatus, gateway_ref: str | None) -> bool:
        """Atomic PENDING -> new_status. False if the payment already left PENDING."""
        values = {"status": new_status.value}
        if gateway_ref is not None:
            values["gateway_ref"] = gateway_ref
        result = self.db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == PaymentStatus.PENDING.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount == 0:
            return False
        cached = self.db.get(Payment, payment_id)
        if cached is not None:
            self.db.refresh(cached)
        payment_transitions_total.labels(status=new_status.value).inc()
        self._audit(
            AuditAction.PAYMENT_UPDATE,
            f"status: PENDING -> {new_status.value}",
            Collection.PAYMENTS,
            payment_id,
        )
        return True

    def confirm_payment(self, payment_id: str, gateway_ref: str | None = None) -> bool:
        """Gateway reported success. Returns True if this call activated the subscription."""
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFound(f"PAYMENTS {payment_id} not found")
        if payment.status == PaymentStatus.FAILED.value:
            raise InvalidOperation("Payment already failed")
        self._transition(payment_id, PaymentStatus.SUCCESS, gateway_ref)
        return self.mark_paid(payment.user_id, payment_id)

    def fail_payment(self, payment_id: str, gateway_ref: str | None = None) -> bool:
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFound(f"PAYMENTS {payment_id} not found")
        changed = self._transition(payment_id, PaymentStatus.FAILED, gateway_ref)
        if changed:
            logger.info("payment_failed", extra={"user_id": payment.user_id, "payment_id": payment_id})
        return changed

    def mark_paid(self, student_id: str, payment_id: str) -> bool:
        """
        Activate the subscription paid by payment_id. At most once per payment:
        the applied_at claim is a conditional UPDATE, so a repeated or concurrent
        call sees rowcount 0 and does nothing. Returns True if this call applied it.
        """
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFound(f"PAYMENTS {payment_id} not found")
        if payment.user_id != student_id:
            raise InvalidOperation("Payment belongs to another user")
        if payment.status != PaymentStatus.SUCCESS.value:
            raise InvalidOperation("Payment is not confirmed")
        student = self.db.get(User, student_id)
        if student is None:
            raise NotFound(f"USERS {student_id} not found")
        if student.role != Role.STUDENT:
            raise InvalidOperation("Only students hold subscriptions")

        now = datetime.now(timezone.utc)
        claimed = self.db.execute(
            update(Payment)
            .where(
                Payment.id == payment_id,
                Payment.status == PaymentStatus.SUCCESS.value,
                Payment.applied_at.is_(None),
            )
            .values(applied_at=now)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            self.db.rollback()
            logger.info("mark_paid_duplicate", extra={"user_id": student_id, "payment_id": payment_id})
            return False

        plan = self.active_plan(payment.subscription_type)
        expiry = now + timedelta(days=plan.duration_days) if plan is not None else None
        student.is_paid = True
        student.payment_id = payment_id
        student.subscription_type = payment.subscription_type
        student.subscription_expiry = expiry
        self.db.add(student)
        self.db.commit()
        self.db.refresh(student)
        self.db.refresh(payment)

        subscriptions_activated_total.labels(subscription_type=payment.subscription_type).inc()
        logger.info("subscription_activated", extra={"user_id": student_id, "payment_id": payment_id})
        self._audit(
            AuditAction.SUBSCRIPTION_ACTIVATED,
            f"{payment.subscription_type} class={payment.target_class} amount={payment.amount}"
            + (f" until={expiry.date().isoformat()}" if expiry else ""),
            Collection.USERS,
            student_id,
        )
        return True

    def _audit(self, action: AuditAction, details: str, collection: Collection, entity_id: str) -> None:
        try:
            AuditService(self.db).record(
                None, action, details, entity_type=collection.value, entity_id=entity_id
            )
        except SQLAlchemyError:
            self.db.rollback()
            audit_write_failures_total.inc()
            logger.exception(
                "audit_write_failed",
                extra={"collection": collection.value, "entity_id": entity_id, "action": action.value},
            )
