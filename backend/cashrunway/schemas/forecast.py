from __future__ import annotations

from datetime import date, datetime

from cashrunway.schemas.common import Money, ORMModel


class ConfidenceBandOut(ORMModel):
    low: Money
    high: Money


class CashflowForecastResponse(ORMModel):
    user_id: int
    generated_at: datetime
    horizon_days: int
    lookback_days: int
    dates: list[date]
    daily_net_forecast: list[Money]
    cumulative_balance: list[Money]
    current_balance: Money
    runway_days: int | None = None
    confidence_std: Money
    confidence_band: list[ConfidenceBandOut]


class ForecastBatchRunOut(ORMModel):
    id: int
    started_at: datetime
    finished_at: datetime
    eligible: int
    skipped: int
    succeeded: int
    failed: int
    failures: dict[str, str] | None = None
