from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol


@dataclass(frozen=True)
class TransactionPoint:
    """A dated amount as seen by the forecasting math.

    ``on`` is None and ``amount`` may be anything when the underlying record is
    incomplete; the aggregator decides what to skip.
    """

    on: date | None
    amount: Any


@dataclass(frozen=True)
class ConfidenceBandPoint:
    low: Decimal
    high: Decimal


@dataclass(frozen=True)
class ForecastResult:
    user_id: int
    generated_at: datetime
    horizon_days: int
    lookback_days: int
    dates: list[date]
    daily_net_forecast: list[Decimal]
    cumulative_balance: list[Decimal]
    current_balance: Decimal
    runway_days: int | None
    confidence_std: Decimal
    confidence_band: list[ConfidenceBandPoint]


class TransactionRepository(Protocol):
    def inflows(self, user_id: int, start: date, end: date) -> Iterable[TransactionPoint]: ...

    def outflows(self, user_id: int, start: date, end: date) -> Iterable[TransactionPoint]: ...

    def settled_totals(self, user_id: int) -> tuple[Decimal, Decimal]: ...


class BalanceRepository(Protocol):
    def explicit_balance(self, user_id: int) -> Decimal | None: ...


class ForecastStore(Protocol):
    def load(self, user_id: int) -> ForecastResult | None: ...

    def save(self, result: ForecastResult) -> None: ...


class UserActivityRepository(Protocol):
    def list_activity(self) -> list[tuple[int, datetime | None]]: ...


@dataclass(frozen=True)
class ForecastRepositories:
    transactions: TransactionRepository
    balances: BalanceRepository
    forecasts: ForecastStore


class ForecastPersistenceError(RuntimeError):
    """Raised by a ForecastStore when a computed result could not be written."""
