"""user_hosting_configs (호스팅 횟수 제한 카운터)

Revision ID: 004
Revises: 003
Create Date: 2025-03-16 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "user_hosting_configs",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("host_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "last_refresh_time", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )


def downgrade() -> None:
    op.drop_table("user_hosting_configs")
