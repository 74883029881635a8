import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, UniqueConstraint, Uuid, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class Segment(Base):
    """Named group of evaluation contexts; membership requires every rule to match."""
    __table_args__ = (
        UniqueConstraint("project_id", "key", name="uq_segment_project_key"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    key = Column(String, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    rules = Column(JSON, nullable=False, default=list)     # [{attribute, operator, value}]

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    project = relationship("Project", back_populates="segments")
