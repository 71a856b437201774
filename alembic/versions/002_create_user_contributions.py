"""002: create user_contributions table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE user_contributions (
            id                  VARCHAR(64)         PRIMARY KEY,
            purchase_id         VARCHAR(64)         NOT NULL
                                REFERENCES token_purchases (id) ON DELETE CASCADE,
            user_id             VARCHAR(64)         NOT NULL,
            contribution_amount DOUBLE PRECISION    NOT NULL,
            meter_reading       DOUBLE PRECISION    NOT NULL,
            tokens_consumed     DOUBLE PRECISION    NOT NULL,
            created_at          TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_contribution_purchase UNIQUE (purchase_id),
            CONSTRAINT ck_contribution_amount_gte_0 CHECK (contribution_amount >= 0),
            CONSTRAINT ck_contribution_tokens_gte_0 CHECK (tokens_consumed >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_contributions_user ON user_contributions (user_id);")
    op.execute("""
        CREATE TRIGGER trg_user_contributions_updated_at
        BEFORE UPDATE ON user_contributions
        FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_contributions CASCADE;")
