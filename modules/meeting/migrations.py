# modules/meeting/migrations.py
from __future__ import annotations

import logging
from typing import Set

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from database.connection import engine as default_engine

logger = logging.getLogger(__name__)


def _get_columns(engine: Engine, table: str) -> Set[str]:
    """
    Column names of a table, or an empty set if the table does not exist yet.
    SQLite falls back to PRAGMA table_info when the inspector returns nothing.
    """
    insp = inspect(engine)
    try:
        cols = {c["name"] for c in insp.get_columns(table)}
        if cols:
            return cols
    except SQLAlchemyError:
        pass

    if engine.dialect.name == "sqlite":
        with engine.connect() as conn:
            return {row[1] for row in conn.exec_driver_sql(f"PRAGMA table_info({table})")}
    return set()


def _add_column_if_missing(engine: Engine, table: str, column: str, ddl: str) -> bool:
    cols = _get_columns(engine, table)
    # a table create_all has not made yet gets the column from the model
    if not cols or column in cols:
        return False
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))
    logger.info("Migrated %s: added %s", table, column)
    return True


# -------------------------------------------------------------------
# meetings
# -------------------------------------------------------------------
def ensure_meetings_columns(engine: Engine = default_engine) -> None:
    """Online meetings arrived after the first schema: meetings.online_link."""
    _add_column_if_missing(engine, "meetings", "online_link", "VARCHAR(500)")


# -------------------------------------------------------------------
# users
# -------------------------------------------------------------------
def ensure_users_columns(engine: Engine = default_engine) -> None:
    _add_column_if_missing(engine, "users", "profile_picture_url", "VARCHAR(300)")


# -------------------------------------------------------------------
# Entry for app startup
# -------------------------------------------------------------------
def run_startup_migrations(engine: Engine = default_engine) -> None:
    """Call on startup, after create_all."""
    ensure_meetings_columns(engine)
    ensure_users_columns(engine)
