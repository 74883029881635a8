"""Feature flags and their per-environment serving state.

A flag carries its candidate values (variations) as an ordered JSON list.
Each (flag, environment) pair has exactly one FlagState row holding the
on/off switch and the targeting configuration under ``rules["targeting"]``.
"""

import uuid
from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint, Uuid, func,
)
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class FeatureFlag(Base):
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    key = Column(String, unique=True, nullable=False, index=True)      # e.g. "new-dashboard"
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False, default="boolean")           # boolean, string, number, json
    default_value = Column(String, nullable=True)                      # string-encoded
    variations = Column(JSON, nullable=False, default=list)            # [{id, name, value, type?}]
    is_archived = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    project = relationship("Project", back_populates="flags")
    flag_states = relationship("FlagState", back_populates="flag", cascade="all, delete-orphan")


class FlagState(Base):
    __table_args__ = (
        UniqueConstraint("flag_id", "environment_id", name="uq_flag_state_flag_environment"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    flag_id = Column(Uuid, ForeignKey("feature_flags.id", ondelete="CASCADE"), nullable=False, index=True)
    environment_id = Column(Uuid, ForeignKey("environments.id", ondelete="CASCADE"), nullable=False, index=True)
    is_enabled = Column(Boolean, nullable=False, default=False)
    rules = Column(JSON, nullable=False, default=dict)                 # {"targeting": {...}}

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    flag = relationship("FeatureFlag", back_populates="flag_states")
    environment = relationship("Environment", back_populates="flag_states")
