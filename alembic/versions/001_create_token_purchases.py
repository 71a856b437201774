"""001: create token_purchases table

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE token_purchases (
            id              VARCHAR(64)         PRIMARY KEY,
            total_tokens    DOUBLE PRECISION    NOT NULL,
            total_payment   DOUBLE PRECISION    NOT NULL,
            meter_reading   DOUBLE PRECISION    NOT NULL,
            purchase_date   TIMESTAMPTZ         NOT NULL,
            is_emergency    BOOLEAN             NOT NULL DEFAULT FALSE,
            created_by      VARCHAR(64),
            created_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_purchase_tokens_gt_0 CHECK (total_tokens > 0),
            CONSTRAINT ck_purchase_payment_gt_0 CHECK (total_payment > 0),
            CONSTRAINT ck_purchase_meter_gte_0 CHECK (meter_reading >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_purchases_date ON token_purchases (purchase_date, id);")
    op.execute("""
        CREATE TRIGGER trg_token_purchases_updated_at
        BEFORE UPDATE ON token_purchases
        FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE token_purchases IS "
        "'Prepaid token purchases. Amounts are USD doubles, tokens are kWh';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS token_purchases CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
