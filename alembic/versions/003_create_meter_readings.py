"""003: create meter_readings table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE meter_readings (
            id              VARCHAR(64)         PRIMARY KEY,
            user_id         VARCHAR(64)         NOT NULL,
            reading         DOUBLE PRECISION    NOT NULL,
            reading_date    DATE                NOT NULL,
            notes           VARCHAR(500),
            created_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_meter_reading_gte_0 CHECK (reading >= 0)
        );
    """)
    # One global series: neighbour lookups go by date then value
    op.execute("CREATE INDEX idx_meter_date_reading ON meter_readings (reading_date, reading);")
    op.execute(
        "CREATE INDEX idx_meter_user_date ON meter_readings (user_id, reading_date DESC);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS meter_readings CASCADE;")
