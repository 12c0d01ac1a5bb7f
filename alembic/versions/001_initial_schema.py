"""Initial schema — teams, users, memberships, conversations, handoffs.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Teams
    op.create_table(
        "teams",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), unique=True, nullable=False),
        sa.Column("team_type", sa.String(30), nullable=False),
        sa.Column("max_capacity", sa.Integer, nullable=True),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column(
            "auto_assignment_enabled", sa.Boolean, nullable=False, server_default="true"
        ),
        sa.CheckConstraint("max_capacity >= 0", name="ck_teams_max_capacity"),
    )
    op.create_index("idx_teams_type", "teams", ["team_type"])

    # Users (agents)
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="agent"),
        sa.Column("is_online", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("role_capacity", sa.Integer, nullable=True),
    )

    # Team memberships
    op.create_table(
        "team_memberships",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "team_id",
            sa.Integer,
            sa.ForeignKey("teams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_memberships_team_user"),
    )
    op.create_index("idx_team_memberships_user", "team_memberships", ["user_id"])

    # Conversations
    op.create_table(
        "conversations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("contact_id", sa.Integer, nullable=False),
        sa.Column("channel", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("assigned_team_id", sa.Integer, sa.ForeignKey("teams.id"), nullable=True),
        sa.Column("assigned_user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("assignment_method", sa.String(30), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("priority", sa.String(20), nullable=False, server_default="normal"),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_handoff_id", sa.Integer, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_conversations_team_status", "conversations", ["assigned_team_id", "status"]
    )
    op.create_index(
        "idx_conversations_user_status", "conversations", ["assigned_user_id", "status"]
    )

    # Handoffs
    op.create_table(
        "handoffs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "conversation_id",
            sa.Integer,
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("from_team_id", sa.Integer, sa.ForeignKey("teams.id"), nullable=True),
        sa.Column("from_user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("to_team_id", sa.Integer, sa.ForeignKey("teams.id"), nullable=True),
        sa.Column("to_user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("priority", sa.String(20), nullable=False, server_default="normal"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("classification_snapshot", JSONB, nullable=True),
        sa.Column("metadata", JSONB, nullable=True),
        sa.Column("conversation_version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_handoffs_conversation", "handoffs", ["conversation_id"])
    op.create_index("idx_handoffs_status", "handoffs", ["status"])
    op.create_index("idx_handoffs_to_user_status", "handoffs", ["to_user_id", "status"])
    op.create_index("idx_handoffs_created_at", "handoffs", ["created_at"])


def downgrade() -> None:
    op.drop_table("handoffs")
    op.drop_table("conversations")
    op.drop_table("team_memberships")
    op.drop_table("users")
    op.drop_table("teams")
