# backend/invite_gate/models.py
import sqlalchemy as sa
from sqlalchemy import Boolean, Column, DateTime, Index, String

from invite_gate.db.base import Base


class InvitationToken(Base):
    """
    A single-use registration invitation scoped to one realm.

    `used` only ever flips false -> true. Rows are never deleted by the core.
    `expires_on` NULL means the token never expires.
    """
    __tablename__ = "custom_invitation"

    id = Column(String(36), primary_key=True)
    token = Column(String(255), nullable=False, unique=True)
    used = Column(Boolean, nullable=False, default=False, server_default=sa.false())
    realm = Column(String(255), nullable=False)

    created_on = Column(DateTime(timezone=True), nullable=False)
    expires_on = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_custom_invitation_token_realm", "token", "realm"),
        Index("ix_custom_invitation_created_on", "created_on"),
    )

    def __repr__(self) -> str:
        # Never print the token itself; it is a bearer credential.
        return f"<InvitationToken id={self.id} realm={self.realm} used={self.used}>"
