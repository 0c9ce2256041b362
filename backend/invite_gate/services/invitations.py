# backend/invite_gate/services/invitations.py
"""
Invitation lifecycle: generate, validate, consume, list.

Every decision about whether a token is usable lives here. Validation never
raises for bad user input; it returns a ValidationResult the registration
flow can render. Consumption never raises at all: by the time it runs the
account already exists.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from invite_gate.core.config import settings
from invite_gate.core.errors import (
    InvalidArgumentError,
    InvitationGenerationError,
    InviteErrorCode,
)
from invite_gate.models import InvitationToken
from invite_gate.schemas import (
    InvitationListItem,
    InviteGenerationResponse,
    PaginatedInvitationResponse,
    PaginationInfo,
)
from invite_gate.services.invitation_store import InvitationStore
from invite_gate.services.tokens import (
    Clock,
    as_utc_aware,
    is_blank,
    now_utc,
    to_epoch_millis,
)

logger = logging.getLogger("invite_gate.invitations")

GENERATED_MESSAGE = "Invitation token generated successfully"


class ValidationErrorKind(str, Enum):
    VALID = "valid"
    MISSING_TOKEN = "missing_token"
    TOKEN_NOT_FOUND = "token_not_found"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"


# Expired and unknown tokens share one code: the form must not reveal which.
_ERROR_CODES: dict[ValidationErrorKind, InviteErrorCode] = {
    ValidationErrorKind.MISSING_TOKEN: InviteErrorCode.INVITE_CODE_MISSING,
    ValidationErrorKind.TOKEN_NOT_FOUND: InviteErrorCode.INVITE_CODE_INVALID,
    ValidationErrorKind.EXPIRED: InviteErrorCode.INVITE_CODE_INVALID,
    ValidationErrorKind.ALREADY_USED: InviteErrorCode.INVITE_CODE_ALREADY_USED,
}


@dataclass(frozen=True)
class ValidationResult:
    kind: ValidationErrorKind
    entity: Optional[InvitationToken] = None

    def __post_init__(self) -> None:
        if self.kind is ValidationErrorKind.VALID and self.entity is None:
            raise ValueError("Valid result must have an entity")
        if self.kind is not ValidationErrorKind.VALID and self.entity is not None:
            raise ValueError("Invalid result must not carry an entity")

    @classmethod
    def valid(cls, entity: InvitationToken) -> "ValidationResult":
        return cls(ValidationErrorKind.VALID, entity)

    @classmethod
    def invalid(cls, kind: ValidationErrorKind) -> "ValidationResult":
        return cls(kind)

    @property
    def is_valid(self) -> bool:
        return self.kind is ValidationErrorKind.VALID

    @property
    def error_code(self) -> Optional[InviteErrorCode]:
        return _ERROR_CODES.get(self.kind)


def is_expired(entity: InvitationToken, now) -> bool:
    expires_on = as_utc_aware(entity.expires_on)
    return expires_on is not None and expires_on <= now


def is_usable(entity: InvitationToken, now) -> bool:
    return not entity.used and not is_expired(entity, now)


def clamp_page(page: Optional[int]) -> int:
    return max(0, page) if page is not None else 0


def clamp_size(size: Optional[int], *, default: int, maximum: int) -> int:
    if size is None:
        return default
    return max(1, min(size, maximum))


class InvitationService:
    def __init__(
        self,
        store: InvitationStore,
        *,
        clock: Clock = now_utc,
        default_expiration_seconds: Optional[int] = None,
        max_page_size: Optional[int] = None,
    ):
        if store is None:
            raise InvalidArgumentError("InvitationStore cannot be None")
        self.store = store
        self._clock = clock
        self.default_expiration_seconds = (
            default_expiration_seconds or settings.invite_default_expiration_seconds
        )
        self.max_page_size = max_page_size or settings.invite_max_page_size

    # ---------- Generation ----------

    def generate(
        self,
        realm_id: Optional[str],
        expiration_seconds: Optional[int] = None,
    ) -> InviteGenerationResponse:
        if is_blank(realm_id):
            raise InvalidArgumentError("Realm ID cannot be null or blank")

        if expiration_seconds is None:
            expiration_seconds = self.default_expiration_seconds

        token = self.store.create(realm_id, expiration_seconds)

        entity = self.store.find_by_token(token)
        if entity is None:
            raise InvitationGenerationError(
                f"Failed to retrieve newly created invitation token: {token}"
            )

        logger.info(
            "Invitation generated id=%s realm=%s expires_in_s=%d",
            entity.id,
            entity.realm,
            expiration_seconds,
        )
        return InviteGenerationResponse(
            token=entity.token,
            realm=entity.realm,
            message=GENERATED_MESSAGE,
            expiration_time=to_epoch_millis(entity.expires_on),
            used=bool(entity.used),
        )

    # ---------- Validation ----------

    def validate_detailed(
        self,
        token: Optional[str],
        realm_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Classify a token for a registration attempt.

        With `realm_id` the lookup is realm-scoped, and a blank realm counts
        as missing input. Checks run presence, existence, used, expiry, in
        that order, so a token that is both used and expired reports
        ALREADY_USED. Blank input never reaches the store.
        """
        if is_blank(token):
            return ValidationResult.invalid(ValidationErrorKind.MISSING_TOKEN)

        if realm_id is None:
            entity = self.store.find_by_token(token)
        elif is_blank(realm_id):
            return ValidationResult.invalid(ValidationErrorKind.MISSING_TOKEN)
        else:
            entity = self.store.find_by_token_and_realm(token, realm_id)

        if entity is None:
            return ValidationResult.invalid(ValidationErrorKind.TOKEN_NOT_FOUND)

        return self._classify(entity)

    def validate(
        self,
        token: Optional[str],
        realm_id: Optional[str] = None,
    ) -> Optional[InvitationToken]:
        return self.validate_detailed(token, realm_id).entity

    def _classify(self, entity: InvitationToken) -> ValidationResult:
        if entity.used:
            return ValidationResult.invalid(ValidationErrorKind.ALREADY_USED)
        if is_expired(entity, as_utc_aware(self._clock())):
            return ValidationResult.invalid(ValidationErrorKind.EXPIRED)
        return ValidationResult.valid(entity)

    # ---------- Consumption ----------

    def mark_as_used(self, token: Optional[str]) -> bool:
        """
        Consume a token after a successful registration.

        Never raises. Returns True only when this call flipped the flag.

        A store error rolls back the session, since PostgreSQL leaves the
        transaction aborted after a failed statement. The host must commit the
        new account before calling this.
        """
        if is_blank(token):
            logger.warning("Attempted to mark a blank invitation token as used")
            return False

        try:
            entity = self.store.find_by_token(token)
            if entity is None:
                logger.warning("Attempted to mark non-existent invitation token as used")
                return False

            marked = self.store.mark_used(token, entity.realm)
        except SQLAlchemyError:
            logger.exception("Failed to mark invitation token as used (store error)")
            self._discard_failed_transaction()
            return False

        if marked:
            logger.debug("Marked invitation id=%s realm=%s as used", entity.id, entity.realm)
        else:
            logger.warning(
                "Invitation id=%s realm=%s was already used; nothing to mark",
                entity.id,
                entity.realm,
            )
        return marked

    def _discard_failed_transaction(self) -> None:
        try:
            self.store.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback after failed invitation consume also failed")

    # ---------- Listing ----------

    def list_paginated(
        self,
        page: Optional[int],
        size: Optional[int],
    ) -> PaginatedInvitationResponse:
        page = clamp_page(page)
        size = clamp_size(
            size,
            default=settings.invite_default_page_size,
            maximum=self.max_page_size,
        )

        total = self.store.count_all()
        rows = self.store.find_all(page * size, size)

        total_pages = math.ceil(total / size)

        return PaginatedInvitationResponse(
            data=[_to_list_item(e) for e in rows],
            pagination=PaginationInfo(
                page=page,
                size=size,
                total_elements=total,
                total_pages=total_pages,
                has_next=page < total_pages - 1,
                has_previous=page > 0,
            ),
        )


def _to_list_item(entity: InvitationToken) -> InvitationListItem:
    return InvitationListItem(
        id=entity.id,
        token=entity.token,
        used=bool(entity.used),
        realm=entity.realm,
        created_on=to_epoch_millis(entity.created_on) or 0,
        expires_on=to_epoch_millis(entity.expires_on),
    )
