"""Shared fixtures: an in-memory database per test and quick user factories."""
import os

os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_ON_STARTUP", "false")

import pytest
from passlib.context import CryptContext
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from portal.access.policy import SYSTEM
from portal.db.session import init_db
from portal.models.enums import Collection, Role, SubscriptionType
from portal.services.identity.credentials import PasslibVerifier
from portal.services.store.service import Store


class FastVerifier(PasslibVerifier):
    """Same scheme as production, fewer rounds."""

    def __init__(self) -> None:
        self.context = CryptContext(schemes=["pbkdf2_sha256"], pbkdf2_sha256__default_rounds=1000)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return Store(db)


@pytest.fixture
def verifier():
    return FastVerifier()


@pytest.fixture
def make_user(store, verifier):
    counter = {"n": 0}

    def _make(role=Role.STUDENT, password="secret-pass", **fields):
        counter["n"] += 1
        values = {
            "email": f"user{counter['n']}@example.com",
            "password_hash": verifier.hash(password),
            "name": f"User {counter['n']}",
            "mobile": f"90000000{counter['n']:02d}",
            "role": role,
        }
        if role == Role.STUDENT:
            values.setdefault("class_grade", "10")
            values.setdefault("subscription_type", SubscriptionType.CLASS_WISE)
        values.update(fields)
        return store.create(Collection.USERS, values, actor=SYSTEM)

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN, email="admin@growup.com", name="Administrator")


@pytest.fixture
def teacher(make_user):
    return make_user(Role.TEACHER, email="teacher@growup.com", name="Faculty")


@pytest.fixture
def student(make_user):
    return make_user(Role.STUDENT, email="student@example.com", name="Asha", mobile="9123456789")


@pytest.fixture
def make_content(store):
    def _make(actor=SYSTEM, **fields):
        values = {
            "title": "Limits",
            "type": "PDF",
            "url": "https://cdn.example.com/limits.pdf",
            "class_grade": "10",
            "subject": "Maths",
            "chapter": "Calculus",
        }
        values.update(fields)
        return store.create(Collection.CONTENT, values, actor=actor)

    return _make
