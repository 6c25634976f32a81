"""
IdentityService: who is calling.

Session lifecycle: ANONYMOUS -> AUTHENTICATING -> AUTHENTICATED -> ANONYMOUS (logout),
or AUTHENTICATING -> ANONYMOUS on failure. A session is a row bound to a user id;
the token handed to the caller is its id signed with itsdangerous.
"""
import enum
import logging
import secrets
from datetime import datetime, timezone
from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.orm import Session

from portal.access.policy import SYSTEM
from portal.core.config import settings
from portal.models.enums import Collection, Role
from portal.models.login_session import LoginSession
from portal.models.user import User
from portal.schemas.users import StudentSignup
from portal.services.errors import (
    AccountBlocked,
    InvalidCredentials,
    InvalidField,
    NoSession,
    StaleSession,
)
from portal.services.identity.credentials import CredentialVerifier, default_verifier
from portal.services.store.service import Store
from portal.utils.metrics import auth_attempts_total

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    ANONYMOUS = "ANONYMOUS"
    AUTHENTICATING = "AUTHENTICATING"
    AUTHENTICATED = "AUTHENTICATED"


class IdentityService:
    def __init__(self, db: Session, verifier: CredentialVerifier | None = None) -> None:
        self.db = db
        self.verifier = verifier or default_verifier
        self.store = Store(db)
        self.serializer = URLSafeTimedSerializer(settings.session_secret, salt="portal-session")
        self.ttl_seconds = settings.session_ttl

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def _load_for_login(self, email: str) -> User | None:
        """One locked read of the identity; every check below uses this snapshot."""
        return (
            self.db.query(User)
            .filter(User.email == email.strip().lower())
            .with_for_update()
            .one_or_none()
        )

    def verify(self, email: str, secret: str) -> User:
        user = self._load_for_login(email)
        if user is None or not self.verifier.verify(secret, user.password_hash):
            raise InvalidCredentials()
        return user

    def authenticate(self, email: str, secret: str) -> tuple[User, str]:
        """Returns (user, session token)."""
        try:
            user = self.verify(email, secret)
        except InvalidCredentials:
            self.db.rollback()
            auth_attempts_total.labels(outcome="invalid_credentials").inc()
            logger.info("login_failed", extra={"reason": "invalid_credentials"})
            raise
        if user.is_blocked:
            self.db.rollback()
            auth_attempts_total.labels(outcome="blocked").inc()
            logger.warning("login_blocked", extra={"user_id": user.id})
            raise AccountBlocked()

        token = self._open_session(user)
        auth_attempts_total.labels(outcome="success").inc()
        logger.info("login_succeeded", extra={"user_id": user.id})
        return user, token

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _open_session(self, user: User) -> str:
        session_id = secrets.token_urlsafe(32)
        self.db.add(LoginSession(id=session_id, user_id=user.id, status="active"))
        self.db.commit()
        return self.serializer.dumps(session_id)

    def _session_id(self, token: str | None) -> str | None:
        """Unsigned session id, or None for a missing/forged token. Expiry is not checked here."""
        if not token:
            return None
        try:
            return self.serializer.loads(token)
        except BadSignature:
            return None

    def _revoke(self, session_id: str) -> None:
        self.db.execute(
            update(LoginSession)
            .where(LoginSession.id == session_id, LoginSession.status == "active")
            .values(status="revoked", revoked_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def resolve_session(self, token: str | None) -> User:
        if not token:
            raise NoSession()
        try:
            session_id = self.serializer.loads(token, max_age=self.ttl_seconds)
        except SignatureExpired:
            expired_id = self._session_id(token)
            if expired_id:
                self._revoke(expired_id)
            raise NoSession("Your session has expired, please sign in again")
        except BadSignature:
            raise NoSession()

        row = self.db.get(LoginSession, session_id)
        if row is None or row.status != "active":
            raise NoSession()

        user = self.db.get(User, row.user_id)
        if user is None:
            self._revoke(session_id)
            logger.info("session_stale", extra={"user_id": row.user_id})
            raise StaleSession()
        if user.is_blocked:
            self._revoke(session_id)
            logger.info("session_revoked_blocked", extra={"user_id": user.id})
            raise AccountBlocked()
        return user

    def session_state(self, token: str | None) -> SessionState:
        try:
            self.resolve_session(token)
        except (NoSession, AccountBlocked):
            return SessionState.ANONYMOUS
        return SessionState.AUTHENTICATED

    def logout(self, token: str | None) -> None:
        """Idempotent; unknown, forged and already revoked tokens are fine."""
        session_id = self._session_id(token)
        if session_id:
            self._revoke(session_id)

    def logout_all(self, user_id: str) -> int:
        result = self.db.execute(
            update(LoginSession)
            .where(LoginSession.user_id == user_id, LoginSession.status == "active")
            .values(status="revoked", revoked_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, candidate: dict[str, Any] | StudentSignup) -> User:
        """Public sign-up: always a STUDENT, always unpaid. DuplicateKey surfaces from the store."""
        if not isinstance(candidate, StudentSignup):
            try:
                candidate = StudentSignup.model_validate(candidate)
            except ValidationError as e:
                raise InvalidField("; ".join(err["msg"] for err in e.errors())) from e

        user = self.store.create(
            Collection.USERS,
            {
                "email": candidate.email,
                "password_hash": self.verifier.hash(candidate.password),
                "name": candidate.name,
                "mobile": candidate.mobile,
                "role": Role.STUDENT,
                "class_grade": candidate.class_grade,
                "subscription_type": candidate.subscription_type,
                "subscribed_subject": candidate.subscribed_subject,
                "is_paid": False,
            },
            actor=SYSTEM,
        )
        logger.info("student_registered", extra={"user_id": user.id})
        return user
