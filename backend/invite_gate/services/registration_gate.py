# backend/invite_gate/services/registration_gate.py
"""
Glue between a host registration flow and the invitation lifecycle.

The host calls:
- remember_token() when it renders the registration page,
- check() when the form is submitted (block on a negative decision),
- registration_succeeded() once the account is committed.

`notes` is the host's per-attempt state (an auth-session note map); the gate
stashes the token there so a retry after e.g. a bad password keeps it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, MutableMapping, Optional

from invite_gate.core.errors import InviteErrorCode
from invite_gate.services.invitations import InvitationService
from invite_gate.services.tokens import is_blank

logger = logging.getLogger("invite_gate.registration")

INVITE_QUERY_PARAM = "inviteCode"
INVITE_TOKEN_NOTE = "INVITE_TOKEN"
INVITE_ERROR_NOTE = "inviteCodeError"

USER_MESSAGES: dict[InviteErrorCode, str] = {
    InviteErrorCode.INVITE_CODE_MISSING: "Invite code required.",
    InviteErrorCode.INVITE_CODE_INVALID: "Invite code is invalid.",
    InviteErrorCode.INVITE_CODE_ALREADY_USED: "Invite code has already been used.",
}


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    token: Optional[str] = None
    error_code: Optional[InviteErrorCode] = None
    message: Optional[str] = None


class RegistrationGate:
    def __init__(self, service: InvitationService, realm_id: str):
        self.service = service
        self.realm_id = realm_id

    def remember_token(
        self,
        query_params: Mapping[str, str],
        notes: MutableMapping[str, str],
    ) -> None:
        token = query_params.get(INVITE_QUERY_PARAM)
        if token is not None:
            notes[INVITE_TOKEN_NOTE] = token

    def extract_token(
        self,
        query_params: Mapping[str, str],
        notes: MutableMapping[str, str],
    ) -> Optional[str]:
        token = notes.get(INVITE_TOKEN_NOTE)
        if token is None:
            token = query_params.get(INVITE_QUERY_PARAM)
            if token is not None:
                notes[INVITE_TOKEN_NOTE] = token
        return token

    def check(
        self,
        query_params: Mapping[str, str],
        notes: MutableMapping[str, str],
    ) -> GateDecision:
        token = self.extract_token(query_params, notes)
        result = self.service.validate_detailed(token, self.realm_id)

        if result.is_valid:
            notes.pop(INVITE_ERROR_NOTE, None)
            return GateDecision(allowed=True, token=token)

        code = result.error_code
        notes[INVITE_ERROR_NOTE] = code.value
        logger.info(
            "Registration blocked realm=%s reason=%s",
            self.realm_id,
            result.kind.value,
        )
        return GateDecision(
            allowed=False,
            token=token,
            error_code=code,
            message=USER_MESSAGES[code],
        )

    def registration_succeeded(self, notes: MutableMapping[str, str]) -> bool:
        token = notes.pop(INVITE_TOKEN_NOTE, None)
        if is_blank(token):
            logger.warning("Registration succeeded without a stashed invite token realm=%s", self.realm_id)
            return False
        return self.service.mark_as_used(token)
