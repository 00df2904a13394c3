"""Create mqtt_users table for broker users and topic grants.

Revision ID: 20261019000000
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "20261019000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "mqtt_users",
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("pwd", sa.String(length=255), nullable=False),
        sa.Column("token", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "topics",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("username", name=op.f("pk_mqtt_users")),
    )
    op.create_index(
        op.f("ix_mqtt_users_token"),
        "mqtt_users",
        ["token"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_mqtt_users_token"), table_name="mqtt_users")
    op.drop_table("mqtt_users")
