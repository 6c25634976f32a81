"""
Append-only audit trail of privileged actions.
Newest entries are at the head; the table is trimmed to the configured cap (1000)
after every insert, oldest first. Order is by insertion seq, never by timestamp.
"""
import logging
import threading
from typing import Iterator

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from portal.access.config import get_audit_log_cap
from portal.models.audit_log import AuditLog
from portal.models.enums import SYSTEM_ACTOR, AuditAction

logger = logging.getLogger(__name__)

_seq_lock = threading.Lock()


class RecentEntries:
    """Lazy view over the newest entries; every iteration re-reads the table."""

    def __init__(self, db: Session, limit: int) -> None:
        self.db = db
        self.limit = max(limit, 0)

    def __iter__(self) -> Iterator[AuditLog]:
        if self.limit == 0:
            return iter(())
        query = (
            self.db.query(AuditLog)
            .order_by(AuditLog.seq.desc())
            .limit(self.limit)
            .yield_per(100)
        )
        return iter(query)


class AuditService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def record(
        self,
        actor_id: str | None,
        action: AuditAction,
        details: str = "",
        entity_type: str | None = None,
        entity_id: str | None = None,
    ) -> AuditLog:
        action = AuditAction(action)
        with _seq_lock:
            next_seq = self.db.execute(select(func.coalesce(func.max(AuditLog.seq), 0))).scalar() + 1
            entry = AuditLog(
                seq=next_seq,
                actor_id=actor_id or SYSTEM_ACTOR,
                action=action.value,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details,
            )
            self.db.add(entry)
            self.db.flush()
            self._trim()
            self.db.commit()
        self.db.refresh(entry)
        return entry

    def _trim(self) -> int:
        """Evict everything past the cap, oldest first."""
        cap = get_audit_log_cap()
        boundary = self.db.execute(
            select(AuditLog.seq).order_by(AuditLog.seq.desc()).offset(cap - 1).limit(1)
        ).scalar()
        if boundary is None:
            return 0
        result = self.db.execute(
            delete(AuditLog).where(AuditLog.seq < boundary).execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.debug("audit_log_trimmed", extra={"reason": f"evicted={result.rowcount}"})
        return result.rowcount

    def recent(self, n: int) -> RecentEntries:
        return RecentEntries(self.db, n)

    def count(self) -> int:
        return self.db.query(func.count(AuditLog.id)).scalar() or 0
