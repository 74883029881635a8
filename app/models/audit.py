import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON, Uuid
from app.db.base_class import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog(Base):
    """Append-only record of a mutating operation. Never updated or deleted."""
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)

    action = Column(String, nullable=False, index=True)  # FLAG_CREATED, SEGMENT_UPDATED, ...
    entity = Column(String, nullable=False, index=True)  # FeatureFlag, Segment, Project, Environment
    entity_id = Column(String, nullable=False, index=True)
    user_id = Column(Uuid, nullable=True, index=True)
    project_id = Column(Uuid, nullable=True, index=True)
    payload = Column(JSON, default=dict)

    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
