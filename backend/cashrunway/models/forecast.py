from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, Numeric, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cashrunway.db.base import Base


class CashflowForecast(Base):
    __tablename__ = "cashflow_forecasts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    horizon_days: Mapped[int] = mapped_column(Integer, nullable=False)
    lookback_days: Mapped[int] = mapped_column(Integer, nullable=False)
    dates: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    daily_net_forecast: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    cumulative_balance: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    confidence_band: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    current_balance: Mapped[Decimal] = mapped_column(Numeric(24, 2), nullable=False)
    runway_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    confidence_std: Mapped[Decimal] = mapped_column(Numeric(24, 2), nullable=False)
    # Written by downstream advisory consumers; regeneration leaves it untouched.
    annotations: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="cashflow_forecast")


class ForecastBatchRun(Base):
    __tablename__ = "forecast_batch_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    eligible: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    succeeded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failures: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
