# backend/invite_gate/core/errors.py

from __future__ import annotations

from enum import Enum
import logging
from typing import Any, Optional

from invite_gate.core.request_context import get_request_id

logger = logging.getLogger("invite_gate")


class InviteErrorCode(str, Enum):
    """User-facing codes a registration form renders (message bundle keys)."""

    INVITE_CODE_MISSING = "inviteCodeMissing"
    INVITE_CODE_INVALID = "inviteCodeInvalid"
    INVITE_CODE_ALREADY_USED = "inviteCodeAlreadyUsed"


class AdminErrorCode(str, Enum):
    INVITATION_GENERATION_FAILED = "INVITATION_GENERATION_FAILED"
    INVITATION_LIST_FAILED = "INVITATION_LIST_FAILED"
    FORBIDDEN_REALM_ADMIN_ONLY = "FORBIDDEN_REALM_ADMIN_ONLY"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class InvitationError(Exception):
    """Base class for every error raised by the invitation core."""


class InvalidArgumentError(InvitationError, ValueError):
    """
    Programming/integration error: blank token or realm, non-positive expiry.

    Never user-facing; correct integrations do not trigger it.
    """


class InvitationGenerationError(InvitationError):
    """A token was created but could not be read back."""


class RequestIdFilter(logging.Filter):
    """
    Injects request_id into every LogRecord as `record.request_id`.
    Safe in non-request contexts (falls back to "-").
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            record.request_id = get_request_id()
        except Exception:
            record.request_id = "-"
        return True


def install_request_id_logging(
    logger_name: str = "invite_gate",
    *,
    include_root: bool = True,
) -> None:
    """
    Attach RequestIdFilter so logs can include %(request_id)s in the formatter.
    Call once during startup, right after logging.basicConfig().
    """
    filt = RequestIdFilter()

    if include_root:
        logging.getLogger().addFilter(filt)

    logging.getLogger(logger_name).addFilter(filt)


def log_exception_with_context(
    message: str,
    *,
    request_id: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """
    Log the exception currently being handled, with its stack trace and the
    request id, so 5xx responses can be traced back to a root cause.

    Example:
        try:
            ...
        except Exception:
            log_exception_with_context(
                "Invitation generation failed",
                extra={"realm": realm},
            )
            raise
    """
    rid = request_id or _safe_request_id()
    payload: dict[str, Any] = {"request_id": rid}
    if extra:
        payload.update(extra)

    logger.exception(message, extra={"context": payload})


def _safe_request_id() -> str:
    try:
        return get_request_id() or "-"
    except Exception:
        return "-"
