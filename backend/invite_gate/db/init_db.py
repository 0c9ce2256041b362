# backend/invite_gate/db/init_db.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import Engine

from invite_gate.db.base import Base
from invite_gate.db.session import engine as default_engine

# Import models so every Base subclass is registered on the metadata
import invite_gate.models  # noqa: F401

logger = logging.getLogger("invite_gate.db")


def resolve_sqlite_path(e: Engine) -> Optional[Path]:
    """
    Resolve the SQLite file behind an engine URL, or None for in-memory and
    non-SQLite databases. Relative paths resolve against the working directory.
    """
    if e.url.get_backend_name() != "sqlite":
        return None

    db = e.url.database
    if not db or db == ":memory:":
        return None

    p = Path(db)
    if not p.is_absolute():
        p = (Path.cwd() / p).resolve()
    return p


def init_db(bind: Engine | None = None, *, checkfirst: bool = True) -> None:
    """
    Create any missing tables for local development and tests.

    Deployed databases are migrated with Alembic instead.
    """
    target = bind if bind is not None else default_engine

    db_path = resolve_sqlite_path(target)
    if db_path is not None:
        logger.info("Initializing SQLite database at %s (exists=%s)", db_path, db_path.exists())
    else:
        logger.info("Initializing database backend=%s", target.url.get_backend_name())

    Base.metadata.create_all(bind=target, checkfirst=checkfirst)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
