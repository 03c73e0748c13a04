import logging
import sqlite3
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from config.settings import settings
from database.base import Base

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# SQLite ignores ON DELETE CASCADE / SET NULL unless foreign keys are switched on per connection
@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ---------- session ----------
def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------- bootstrap ----------
def import_all_models() -> None:
    # relationships are declared by class name, so every model has to be imported before use
    from modules.security import model as _security_models  # noqa: F401
    from modules.rooms import models as _room_models  # noqa: F401
    from modules.meeting import models as _meeting_models  # noqa: F401
    from modules.notifications import models as _notification_models  # noqa: F401


def create_all_tables(bind=None) -> None:
    import_all_models()
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ensured")
