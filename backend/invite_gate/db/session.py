# backend/invite_gate/db/session.py
import time
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from invite_gate.core.config import settings
from invite_gate.core.request_context import SQL_HEAD_CHARS, get_request_id, record_db_query

logger = logging.getLogger("invite_gate.db")

DATABASE_URL = settings.database_url or "sqlite:///./invite_gate.db"

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
    future=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)

SLOW_QUERY_MS = float(settings.slow_db_query_ms)
LOG_DB_SQL = bool(settings.log_db_sql)


def _sql_head(statement: str) -> str:
    if not statement:
        return ""
    # Collapse whitespace + trim. No params logged (tokens are bearer secrets).
    head = " ".join(statement.split())
    return head[:SQL_HEAD_CHARS]


def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    context._invite_gate_query_start = time.perf_counter()


def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    start = getattr(context, "_invite_gate_query_start", None)
    if start is None:
        return

    duration_ms = (time.perf_counter() - start) * 1000.0
    head = _sql_head(statement)

    record_db_query(duration_ms, head)

    if duration_ms >= SLOW_QUERY_MS:
        rid = get_request_id()
        if LOG_DB_SQL:
            logger.warning(
                "slow_db_query request_id=%s duration_ms=%.2f sql=%s",
                rid,
                duration_ms,
                head,
            )
        else:
            logger.warning(
                "slow_db_query request_id=%s duration_ms=%.2f",
                rid,
                duration_ms,
            )


def instrument_engine(target: Engine) -> Engine:
    """Attach query timing hooks to an engine (idempotent)."""
    if not event.contains(target, "before_cursor_execute", _before_cursor_execute):
        event.listen(target, "before_cursor_execute", _before_cursor_execute)
        event.listen(target, "after_cursor_execute", _after_cursor_execute)
    return target


instrument_engine(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
