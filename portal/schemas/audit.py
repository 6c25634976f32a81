from datetime import datetime

from pydantic import BaseModel


class AuditLogOut(BaseModel):
    """Audit log entry."""
    id: str
    actor_id: str
    action: str
    entity_type: str | None = None
    entity_id: str | None = None
    details: str
    created_at: datetime

    model_config = {"from_attributes": True}
