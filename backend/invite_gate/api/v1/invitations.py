# backend/invite_gate/api/v1/invitations.py

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from invite_gate.api.deps import get_invitation_service
from invite_gate.core.errors import AdminErrorCode, log_exception_with_context
from invite_gate.core.security import AdminContext, get_admin_context, require_realm_admin
from invite_gate.db.session import get_db
from invite_gate.schemas import (
    InviteGenerationResponse,
    InviteRequest,
    PaginatedInvitationResponse,
)
from invite_gate.services.invitations import InvitationService

logger = logging.getLogger("invite_gate.api")

router = APIRouter(prefix="/realms/{realm}/invitations", tags=["invitations"])


def _http_500(code: AdminErrorCode, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"code": code.value, "message": message},
    )


@router.post("/generate", response_model=InviteGenerationResponse)
def generate_invite(
    realm: str,
    payload: Optional[InviteRequest] = Body(default=None),
    ctx: AdminContext = Depends(get_admin_context),
    service: InvitationService = Depends(get_invitation_service),
    db: Session = Depends(get_db),
):
    require_realm_admin(ctx, realm)

    expiration = payload.expiration_time if payload is not None else None
    if expiration is not None and expiration <= 0:
        expiration = None

    try:
        response = service.generate(realm, expiration)
        db.commit()
    except Exception as e:
        db.rollback()
        log_exception_with_context(
            "Invitation generation failed",
            extra={"realm": realm, "admin": ctx.subject},
        )
        raise _http_500(
            AdminErrorCode.INVITATION_GENERATION_FAILED,
            f"Failed to generate invitation token: {e}",
        )

    logger.info("Invitation issued realm=%s admin=%s", realm, ctx.subject)
    return response


@router.get("", response_model=PaginatedInvitationResponse)
def list_invites(
    realm: str,
    page: Optional[int] = Query(default=None),
    size: Optional[int] = Query(default=None),
    ctx: AdminContext = Depends(get_admin_context),
    service: InvitationService = Depends(get_invitation_service),
):
    require_realm_admin(ctx, realm)

    try:
        return service.list_paginated(page, size)
    except Exception as e:
        log_exception_with_context(
            "Invitation listing failed",
            extra={"realm": realm, "admin": ctx.subject},
        )
        raise _http_500(
            AdminErrorCode.INVITATION_LIST_FAILED,
            f"Failed to retrieve invitations: {e}",
        )
