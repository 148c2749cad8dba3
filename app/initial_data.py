import logging

from app.core.actor import ROLE_ADMIN
from app.models.user_model import User
from app.utils.database import SessionLocal

logger = logging.getLogger(__name__)

SYSTEM_USERNAME = "system"


def seed_system_user(db) -> User:
    user = db.query(User).filter(User.username == SYSTEM_USERNAME).first()
    if user:
        return user

    user = User(username=SYSTEM_USERNAME, name="System Administrator", role=ROLE_ADMIN)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("seeded system user %s", user.user_id)
    return user


def init_seed():
    db = SessionLocal()
    try:
        seed_system_user(db)
    finally:
        db.close()
