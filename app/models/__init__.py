from app.db.base_class import Base
from app.models.project import Project, project_members
from app.models.user import User
from app.models.environment import Environment
from app.models.feature_flag import FeatureFlag, FlagState
from app.models.segment import Segment
from app.models.audit import AuditLog
