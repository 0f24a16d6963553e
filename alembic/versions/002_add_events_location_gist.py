"""add GiST index on events.long_lat (거리 정렬 성능)

Revision ID: 002
Revises: 001
Create Date: 2025-03-02 00:00:01.000000

"""
from typing import Sequence, Union

from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_events_long_lat_gist "
        "ON events USING GIST (long_lat);"
    )
    # 탐색 후보 필터: 시작 전 + 삭제 안 됨
    op.execute(
        "CREATE INDEX IF NOT EXISTS idx_events_active_start_time "
        "ON events (start_time) WHERE deleted IS FALSE;"
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_events_active_start_time;")
    op.execute("DROP INDEX IF EXISTS idx_events_long_lat_gist;")
