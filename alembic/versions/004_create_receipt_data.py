"""004: create receipt_data table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE receipt_data (
            id                      VARCHAR(64)         PRIMARY KEY,
            purchase_id             VARCHAR(64)         NOT NULL
                                    REFERENCES token_purchases (id) ON DELETE CASCADE,
            token_number            VARCHAR(64),
            account_number          VARCHAR(32),
            kwh_purchased           DOUBLE PRECISION    NOT NULL,
            energy_cost_zwg         DOUBLE PRECISION    NOT NULL,
            debt_zwg                DOUBLE PRECISION    NOT NULL DEFAULT 0,
            rea_zwg                 DOUBLE PRECISION    NOT NULL DEFAULT 0,
            vat_zwg                 DOUBLE PRECISION    NOT NULL DEFAULT 0,
            total_amount_zwg        DOUBLE PRECISION    NOT NULL,
            tendered_zwg            DOUBLE PRECISION    NOT NULL,
            transaction_date_time   TIMESTAMPTZ         NOT NULL,
            created_at              TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ         NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_receipt_purchase UNIQUE (purchase_id),
            CONSTRAINT ck_receipt_kwh_gt_0 CHECK (kwh_purchased > 0),
            CONSTRAINT ck_receipt_total_gt_0 CHECK (total_amount_zwg > 0)
        );
    """)
    op.execute("CREATE INDEX idx_receipt_txn_time ON receipt_data (transaction_date_time);")
    op.execute("""
        CREATE TRIGGER trg_receipt_data_updated_at
        BEFORE UPDATE ON receipt_data
        FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE receipt_data IS 'Official provider receipts, amounts in ZWG';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS receipt_data CASCADE;")
