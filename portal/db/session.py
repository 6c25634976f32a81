from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from portal.core.config import settings
from portal.db.base import Base


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # one connection shared across FastAPI's threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_recycle": 1800,  # recycle connections every 30 min (avoid stale)
        "connect_args": {"connect_timeout": 5},
    }


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(bind=None) -> None:
    """Create all portal tables that do not exist yet."""
    from portal.models import (  # noqa: F401  registers every model on Base.metadata
        ad,
        app_settings,
        audit_log,
        content,
        login_session,
        payment,
        plan,
        user,
    )

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
