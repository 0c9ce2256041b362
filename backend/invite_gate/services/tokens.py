# backend/invite_gate/services/tokens.py
from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

DEFAULT_TOKEN_BYTES = 32

# Largest lifetime the admin API accepts (a signed 32-bit int of seconds).
MAX_EXPIRATION_SECONDS = 2_147_483_647


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def generate_invite_token(nbytes: int = DEFAULT_TOKEN_BYTES) -> str:
    # Opaque bearer credential, URL safe so it can ride in ?inviteCode=
    return secrets.token_urlsafe(nbytes)


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def as_utc_aware(dt: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for DateTime(timezone=True).
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_millis(dt: datetime | None) -> int | None:
    aware = as_utc_aware(dt)
    if aware is None:
        return None
    return int(aware.timestamp() * 1000)
