import secrets
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base


def generate_api_key() -> str:
    return f"env-{secrets.token_urlsafe(24)}"


class Environment(Base):
    """A deployment context of a project, each with its own flag states."""
    __table_args__ = (
        UniqueConstraint("project_id", "key", name="uq_environment_project_key"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    key = Column(String, nullable=False)        # unique within the project only
    name = Column(String, nullable=False)
    api_key = Column(String, unique=True, nullable=False, default=generate_api_key, index=True)
    require_confirmation = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    project = relationship("Project", back_populates="environments")
    flag_states = relationship("FlagState", back_populates="environment", cascade="all, delete-orphan")
