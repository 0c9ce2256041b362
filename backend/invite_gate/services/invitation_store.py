# backend/invite_gate/services/invitation_store.py
"""
Persistence for invitation tokens.

The store holds no business rules: it validates its arguments, reads and
writes rows, and leaves every usable/expired/used decision to
InvitationService. It flushes but never commits; the caller owns the
transaction and decides when to roll it back.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session

from invite_gate.core.errors import InvalidArgumentError
from invite_gate.models import InvitationToken
from invite_gate.services.tokens import (
    DEFAULT_TOKEN_BYTES,
    MAX_EXPIRATION_SECONDS,
    Clock,
    as_utc_aware,
    generate_invite_token,
    is_blank,
    now_utc,
)

logger = logging.getLogger("invite_gate.store")


def _require_token(token: Optional[str]) -> None:
    if is_blank(token):
        raise InvalidArgumentError("Token cannot be null or blank")


def _require_realm(realm: Optional[str]) -> None:
    if is_blank(realm):
        raise InvalidArgumentError("Realm ID cannot be null or blank")


def _require_positive_seconds(expiration_seconds: int) -> None:
    if isinstance(expiration_seconds, bool) or not isinstance(expiration_seconds, int):
        raise InvalidArgumentError(
            f"Expiration seconds must be an integer, got: {expiration_seconds!r}"
        )
    if expiration_seconds <= 0:
        raise InvalidArgumentError(
            f"Expiration seconds must be positive, got: {expiration_seconds}"
        )
    if expiration_seconds > MAX_EXPIRATION_SECONDS:
        raise InvalidArgumentError(
            f"Expiration seconds must not exceed {MAX_EXPIRATION_SECONDS}, got: {expiration_seconds}"
        )


class InvitationStore:
    def __init__(
        self,
        db: Session,
        *,
        clock: Clock = now_utc,
        token_bytes: int = DEFAULT_TOKEN_BYTES,
    ):
        if db is None:
            raise InvalidArgumentError("Session cannot be None")
        self.db = db
        self._clock = clock
        self._token_bytes = token_bytes

    # ---------- Lookups (read-only) ----------

    def find_by_token(self, token: Optional[str]) -> Optional[InvitationToken]:
        _require_token(token)
        return (
            self.db.query(InvitationToken)
            .filter(InvitationToken.token == token)
            .first()
        )

    def find_by_token_and_realm(
        self, token: Optional[str], realm: Optional[str]
    ) -> Optional[InvitationToken]:
        _require_token(token)
        _require_realm(realm)
        return (
            self.db.query(InvitationToken)
            .filter(
                InvitationToken.token == token,
                InvitationToken.realm == realm,
            )
            .first()
        )

    def find_all(self, offset: int, limit: int) -> list[InvitationToken]:
        if offset < 0:
            raise InvalidArgumentError(f"Offset must not be negative, got: {offset}")
        if limit <= 0:
            raise InvalidArgumentError(f"Limit must be positive, got: {limit}")

        return (
            self.db.query(InvitationToken)
            .order_by(InvitationToken.created_on.desc(), InvitationToken.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_all(self) -> int:
        return int(self.db.query(func.count(InvitationToken.id)).scalar() or 0)

    # ---------- Writes ----------

    def create(self, realm: Optional[str], expiration_seconds: int) -> str:
        _require_realm(realm)
        _require_positive_seconds(expiration_seconds)

        # Stored naive on SQLite and read back as UTC, so never persist another offset.
        now = as_utc_aware(self._clock())
        token = generate_invite_token(self._token_bytes)

        entity = InvitationToken(
            id=str(uuid4()),
            token=token,
            used=False,
            realm=realm,
            created_on=now,
            expires_on=now + timedelta(seconds=expiration_seconds),
        )
        self.db.add(entity)
        self.db.flush()

        logger.debug(
            "Created invitation id=%s realm=%s expires_in_s=%d",
            entity.id,
            realm,
            expiration_seconds,
        )
        return token

    def mark_used(self, token: Optional[str], realm: Optional[str]) -> bool:
        """
        Flip `used` in one conditional UPDATE.

        Returns True only for the caller whose statement changed the row; a
        missing token or a token someone already consumed yields False.
        """
        _require_token(token)
        _require_realm(realm)

        affected = (
            self.db.query(InvitationToken)
            .filter(
                InvitationToken.token == token,
                InvitationToken.realm == realm,
                InvitationToken.used == False,  # noqa: E712
            )
            .update({InvitationToken.used: True}, synchronize_session="auto")
        )
        self.db.flush()
        return affected == 1

    def rollback(self) -> None:
        self.db.rollback()
