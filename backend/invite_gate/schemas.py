# backend/invite_gate/schemas.py
"""
Wire shapes for the admin surface.

Attributes are snake_case in Python and camelCase on the wire, so the JSON
matches what the identity provider's admin console already consumes.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from invite_gate.services.tokens import MAX_EXPIRATION_SECONDS


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InviteRequest(_CamelModel):
    # Seconds; missing or non-positive means "use the default lifetime".
    expiration_time: Optional[int] = Field(default=None, le=MAX_EXPIRATION_SECONDS)


class InviteGenerationResponse(_CamelModel):
    token: str
    realm: str
    message: str
    expiration_time: Optional[int] = None  # epoch millis
    used: bool = False


class InvitationListItem(_CamelModel):
    id: str
    token: str
    used: bool
    realm: str
    created_on: int  # epoch millis
    expires_on: Optional[int] = None  # epoch millis


class PaginationInfo(_CamelModel):
    page: int
    size: int
    total_elements: int
    total_pages: int
    has_next: bool
    has_previous: bool


class PaginatedInvitationResponse(_CamelModel):
    data: list[InvitationListItem]
    pagination: PaginationInfo
