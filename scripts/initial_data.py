import logging

from app.db.session import SessionLocal
from app.crud import crud_audit, crud_flag, crud_project, crud_user
from app.schemas.feature_flag import FeatureFlagCreate
from app.schemas.project import ProjectCreate
from app.schemas.user import UserCreate
from app.services.variations import default_boolean_variations
from app.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_PROJECT_KEY = "demo"
DEMO_FLAG_KEY = "new-dashboard"


def init_db() -> None:
    db = SessionLocal()

    superuser_email = settings.FIRST_SUPERUSER_EMAIL
    superuser_password = settings.FIRST_SUPERUSER_PASSWORD

    if superuser_email == "admin@example.com":
        logger.warning(
            "⚠️  Using default superuser email 'admin@example.com'. "
            "Set FIRST_SUPERUSER_EMAIL in .env for production."
        )
    if superuser_password == "admin123":
        logger.warning(
            "⚠️  Using default superuser password. "
            "Set FIRST_SUPERUSER_PASSWORD in .env for production."
        )

    try:
        user = crud_user.get_by_email(db, email=superuser_email)
        if not user:
            logger.info("Creating superuser: %s", superuser_email)
            user_in = UserCreate(
                email=superuser_email,
                username=settings.FIRST_SUPERUSER_USERNAME,
                password=superuser_password,
                first_name="Admin",
            )
            user = crud_user.create(db, obj_in=user_in, is_superuser=True)

        project = crud_project.get_by_key(db, key=DEMO_PROJECT_KEY)
        if not project:
            logger.info("Creating demo project")
            project = crud_project.create(
                db,
                obj_in=ProjectCreate(name="Demo Project", key=DEMO_PROJECT_KEY),
                owner=user,
            )
            crud_audit.create_audit_log(
                db,
                action="PROJECT_CREATED",
                entity="Project",
                entity_id=project.id,
                user_id=user.id,
                project_id=project.id,
                payload={"name": project.name, "key": project.key},
            )

        if not crud_flag.get_by_key(db, key=DEMO_FLAG_KEY):
            logger.info("Creating demo flag %s", DEMO_FLAG_KEY)
            flag = crud_flag.create(
                db,
                project_id=project.id,
                obj_in=FeatureFlagCreate(
                    name="New dashboard",
                    key=DEMO_FLAG_KEY,
                    description="Serve the redesigned dashboard",
                    default_value="false",
                ),
                variations=default_boolean_variations(),
            )
            crud_audit.create_audit_log(
                db,
                action="FLAG_CREATED",
                entity="FeatureFlag",
                entity_id=flag.id,
                user_id=user.id,
                project_id=project.id,
                payload={"name": flag.name, "key": flag.key},
            )

        logger.info(
            "Demo project environments: %s",
            ", ".join(e.key for e in project.environments),
        )
    finally:
        db.close()


if __name__ == "__main__":
    logger.info("Creating initial data")
    init_db()
    logger.info("Initial data created")
