import logging

from academy_api import config
from academy_api.auth import get_password_hash
from academy_api.database import SessionLocal
from academy_api.models.user import User, UserRole

logger = logging.getLogger(__name__)


def create_first_user(session_factory=SessionLocal):
    """
    Garante que exista um super administrador. Credentials come from
    FIRST_ADMIN_USERNAME / FIRST_ADMIN_EMAIL / FIRST_ADMIN_PASSWORD.
    """
    db = session_factory()

    try:
        user = db.query(User).filter(User.username == config.FIRST_ADMIN_USERNAME).first()

        if not user:
            logger.info("Creating first super administrator '%s'.", config.FIRST_ADMIN_USERNAME)
            db_user = User(
                username=config.FIRST_ADMIN_USERNAME,
                email=config.FIRST_ADMIN_EMAIL,
                name="System Administrator",
                hashed_password=get_password_hash(config.FIRST_ADMIN_PASSWORD),
                role=UserRole.SUPER_ADMIN.value,
                is_active=True,
            )
            db.add(db_user)
            db.commit()
            if config.is_production() and config.FIRST_ADMIN_PASSWORD == "admin":
                logger.warning("First administrator created with the default password; change it now.")
        else:
            logger.info("Administrator '%s' already exists.", config.FIRST_ADMIN_USERNAME)

    except Exception:
        db.rollback()
        logger.exception("Could not create the first administrator.")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    from academy_api.database import init_db

    init_db()
    create_first_user()
