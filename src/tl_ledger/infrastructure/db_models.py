"""SQLAlchemy ORM models for tl_ledger.

These map to existing tables created by Alembic migrations.
DO NOT add/remove columns here without a corresponding migration.
Repositories query with text() SQL; the models document the schema.
"""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.tl_common.database import Base


class TokenPurchaseORM(Base):
    __tablename__ = "token_purchases"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    total_tokens: Mapped[float] = mapped_column(Float, nullable=False)
    total_payment: Mapped[float] = mapped_column(Float, nullable=False)
    meter_reading: Mapped[float] = mapped_column(Float, nullable=False)
    purchase_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_emergency: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class UserContributionORM(Base):
    __tablename__ = "user_contributions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    purchase_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("token_purchases.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    contribution_amount: Mapped[float] = mapped_column(Float, nullable=False)
    meter_reading: Mapped[float] = mapped_column(Float, nullable=False)
    tokens_consumed: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class MeterReadingORM(Base):
    __tablename__ = "meter_readings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reading: Mapped[float] = mapped_column(Float, nullable=False)
    reading_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    # NOTE: No updated_at, the reading series is append-only


class ReceiptDataORM(Base):
    __tablename__ = "receipt_data"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    purchase_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("token_purchases.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    token_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    kwh_purchased: Mapped[float] = mapped_column(Float, nullable=False)
    energy_cost_zwg: Mapped[float] = mapped_column(Float, nullable=False)
    debt_zwg: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    rea_zwg: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    vat_zwg: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_amount_zwg: Mapped[float] = mapped_column(Float, nullable=False)
    tendered_zwg: Mapped[float] = mapped_column(Float, nullable=False)
    transaction_date_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
