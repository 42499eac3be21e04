"""Create all tables. Run on app startup.

Creates a default admin with a random password when no users exist.
The password is shown once on the console and must be changed after first login.
"""
import logging
import secrets

from pharmadesk.core.config import settings
from pharmadesk.core.security import get_password_hash
from pharmadesk.db.base import Base
from pharmadesk.db.session import engine, SessionLocal
from pharmadesk import models  # noqa: F401 - register models
from pharmadesk.models.user import User

logger = logging.getLogger(__name__)


def init_db(bind=None, session_factory=None):
    bind = bind or engine
    session_factory = session_factory or SessionLocal
    Base.metadata.create_all(bind=bind)

    db = session_factory()
    try:
        if db.query(User).count() == 0:
            default_password = secrets.token_urlsafe(16)
            db.add(User(
                email=settings.DEFAULT_ADMIN_EMAIL,
                full_name="Administrator",
                hashed_password=get_password_hash(default_password),
            ))
            db.commit()

            print("\n" + "=" * 70)
            print("DEFAULT ADMIN USER CREATED")
            print("=" * 70)
            print(f"Email:    {settings.DEFAULT_ADMIN_EMAIL}")
            print(f"Password: {default_password}")
            print("\nChange this password immediately after first login!")
            print("=" * 70 + "\n")
            logger.warning(f"[INIT] Default admin {settings.DEFAULT_ADMIN_EMAIL} created")
    finally:
        db.close()
