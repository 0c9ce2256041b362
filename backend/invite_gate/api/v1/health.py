# backend/invite_gate/api/v1/health.py

"""
Health endpoints.

- /api/v1/health       -> lightweight liveness (no DB)
- /api/v1/health/db    -> DB readiness probe (SELECT 1 + invitation table reachable)
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from invite_gate.core.config import settings
from invite_gate.db.session import get_db
from invite_gate.services.invitation_store import InvitationStore

logger = logging.getLogger("invite_gate.health")

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Liveness probe")
def health():
    return {
        "status": "ok",
        "service": "invite-gate",
        "environment": settings.environment,
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/db", summary="Database readiness probe")
def health_db(db: Session = Depends(get_db)):
    """
    Readiness / dependency check.

    Returns 200 when the DB answers and the invitation table is queryable,
    503 otherwise.
    """
    start = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
        invitations = InvitationStore(db).count_all()
    except SQLAlchemyError as exc:
        logger.exception("DB health check failed")
        raise HTTPException(
            status_code=503,
            detail={
                "status": "error",
                "db": "down",
                "error": str(exc),
            },
        )

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    return {
        "status": "ok",
        "db": "up",
        "latency_ms": elapsed_ms,
        "invitations": invitations,
    }
