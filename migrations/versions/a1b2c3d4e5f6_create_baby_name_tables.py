"""create_baby_name_tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


def table_exists(table_name: str) -> bool:
    """Check whether a table exists (startup runs create_all first)."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    return table_name in inspector.get_table_names()


# revision identifiers, used by Alembic.
revision: str = 'a1b2c3d4e5f6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if not table_exists("authorization_codes"):
        op.create_table(
            "authorization_codes",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("code", sa.String(length=32), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="UNUSED"),
            sa.Column("device_id", sa.String(length=128), nullable=True),
            sa.Column("activated_at", sa.DateTime(), nullable=True),
            sa.Column("activated_ip", sa.String(length=45), nullable=True),
            sa.Column("expires_at", sa.DateTime(), nullable=True),
            sa.Column("batch_id", sa.String(length=64), nullable=True),
            sa.Column("metadata", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_authorization_codes_code", "authorization_codes", ["code"], unique=True)
        op.create_index("ix_authorization_codes_status", "authorization_codes", ["status"])
        op.create_index("ix_authorization_codes_device_id", "authorization_codes", ["device_id"])
        op.create_index("ix_authorization_codes_batch_id", "authorization_codes", ["batch_id"])

    if not table_exists("usage_records"):
        op.create_table(
            "usage_records",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("code_id", sa.String(length=36), sa.ForeignKey("authorization_codes.id"), nullable=False),
            sa.Column("code", sa.String(length=32), nullable=False),
            sa.Column("user_id", sa.String(length=32), nullable=False),
            sa.Column("device_id", sa.String(length=128), nullable=False),
            sa.Column("baby_info", sa.JSON(), nullable=False),
            sa.Column("ai_result", sa.JSON(), nullable=False),
            sa.Column("generation_time", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_usage_records_code_id", "usage_records", ["code_id"])
        op.create_index("ix_usage_records_user_id", "usage_records", ["user_id"])
        op.create_index("ix_usage_records_created_at", "usage_records", ["created_at"])

    if not table_exists("favorites"):
        op.create_table(
            "favorites",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("user_id", sa.String(length=32), nullable=False),
            sa.Column("name_id", sa.String(length=36), nullable=False),
            sa.Column("name_data", sa.JSON(), nullable=False),
            sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.UniqueConstraint("user_id", "name_id", name="uq_favorites_user_name"),
        )
        op.create_index("ix_favorites_user_id", "favorites", ["user_id"])
        op.create_index("ix_favorites_score", "favorites", ["score"])
        op.create_index("ix_favorites_created_at", "favorites", ["created_at"])


def downgrade() -> None:
    op.drop_table("favorites")
    op.drop_table("usage_records")
    op.drop_table("authorization_codes")
