import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Table, Uuid, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base

project_members = Table(
    "project_members",
    Base.metadata,
    Column("project_id", Uuid, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Project(Base):
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    key = Column(String, unique=True, nullable=False, index=True)   # e.g. "web-app"
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    members = relationship("User", secondary=project_members, back_populates="projects")
    environments = relationship(
        "Environment",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Environment.created_at",
    )
    flags = relationship("FeatureFlag", back_populates="project", cascade="all, delete-orphan")
    segments = relationship("Segment", back_populates="project", cascade="all, delete-orphan")
