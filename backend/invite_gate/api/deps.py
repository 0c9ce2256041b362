# backend/invite_gate/api/deps.py
"""
Shared API dependencies.

Each request gets its own Session from get_db(); the store and service are
built around that session so nothing is shared between requests except the
database itself.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from invite_gate.core.config import settings
from invite_gate.db.session import get_db
from invite_gate.services.invitation_store import InvitationStore
from invite_gate.services.invitations import InvitationService


def get_invitation_service(db: Session = Depends(get_db)) -> InvitationService:
    store = InvitationStore(db, token_bytes=settings.invite_token_bytes)
    return InvitationService(store)
