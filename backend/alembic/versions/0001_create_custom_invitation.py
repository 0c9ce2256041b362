"""create custom_invitation table

Revision ID: 0001_create_custom_invitation
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_create_custom_invitation"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "custom_invitation",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("token", sa.String(length=255), nullable=False),
        sa.Column(
            "used",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("realm", sa.String(length=255), nullable=False),
        sa.Column("created_on", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_on", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("token", name="uq_custom_invitation_token"),
    )

    op.create_index("ix_custom_invitation_token_realm", "custom_invitation", ["token", "realm"])
    op.create_index("ix_custom_invitation_created_on", "custom_invitation", ["created_on"])


def downgrade() -> None:
    op.drop_index("ix_custom_invitation_created_on", table_name="custom_invitation")
    op.drop_index("ix_custom_invitation_token_realm", table_name="custom_invitation")
    op.drop_table("custom_invitation")
