import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Uuid, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.models.project import project_members


class User(Base):
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    status = Column(String, default="active")
    is_superuser = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    projects = relationship("Project", secondary=project_members, back_populates="members")

    @property
    def is_active(self):
        return self.status == "active"
