# modules/security/bootstrap.py
import logging

from sqlalchemy import func

from config.settings import settings
from database.connection import SessionLocal
from modules.security.model import User, UserRole, UserRoleAssignment
from modules.security.passwords import hash_password

logger = logging.getLogger(__name__)


def ensure_default_admin(session_factory=SessionLocal) -> None:
    """
    Create the bootstrap admin (DEFAULT_ADMIN_EMAIL / DEFAULT_ADMIN_PASSWORD) if missing.
    An existing account with that email is left as it is.
    """
    email = settings.DEFAULT_ADMIN_EMAIL.strip().lower()
    with session_factory() as db:
        exists = db.query(User.id).filter(func.lower(User.email) == email).first()
        if exists:
            return

        admin = User(
            first_name="Admin",
            last_name="User",
            email=email,
            password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
        )
        admin.role_assignments.append(UserRoleAssignment(role=UserRole.ADMIN.value))
        db.add(admin)
        db.commit()
        logger.info("Default admin %s created", email)
