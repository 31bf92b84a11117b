from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cashrunway.models.enums import TransactionStatus
from cashrunway.models.forecast import CashflowForecast
from cashrunway.models.transactions import Expense, Invoice, WalletBalance
from cashrunway.models.user import User
from cashrunway.services.repositories import (
    ConfidenceBandPoint,
    ForecastPersistenceError,
    ForecastRepositories,
    ForecastResult,
    TransactionPoint,
)
from cashrunway.utils.decimal_math import money


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlTransactionRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _points(self, model: type[Invoice] | type[Expense], user_id: int, start: date, end: date) -> list[TransactionPoint]:
        rows = self.db.execute(
            select(model.tx_date, model.amount)
            .where(
                model.user_id == user_id,
                model.tx_date >= start,
                model.tx_date <= end,
            )
            .order_by(model.tx_date.asc(), model.id.asc())
        ).all()
        return [TransactionPoint(on=tx_date, amount=amount) for tx_date, amount in rows]

    def inflows(self, user_id: int, start: date, end: date) -> list[TransactionPoint]:
        return self._points(Invoice, user_id, start, end)

    def outflows(self, user_id: int, start: date, end: date) -> list[TransactionPoint]:
        return self._points(Expense, user_id, start, end)

    def settled_totals(self, user_id: int) -> tuple[Decimal, Decimal]:
        inflow = self.db.scalar(
            select(func.coalesce(func.sum(Invoice.amount), 0)).where(
                Invoice.user_id == user_id,
                Invoice.status == TransactionStatus.paid,
            )
        )
        outflow = self.db.scalar(
            select(func.coalesce(func.sum(Expense.amount), 0)).where(
                Expense.user_id == user_id,
                Expense.status == TransactionStatus.paid,
            )
        )
        return money(inflow or 0), money(outflow or 0)


class SqlBalanceRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def explicit_balance(self, user_id: int) -> Decimal | None:
        amount = self.db.scalar(select(WalletBalance.amount).where(WalletBalance.user_id == user_id))
        if amount is None:
            return None
        return money(amount)


def _decimal_list(values: list) -> list[Decimal]:
    return [Decimal(str(value)) for value in values]


def _row_to_result(row: CashflowForecast) -> ForecastResult:
    return ForecastResult(
        user_id=row.user_id,
        generated_at=as_utc(row.generated_at),
        horizon_days=row.horizon_days,
        lookback_days=row.lookback_days,
        dates=[date.fromisoformat(value) for value in row.dates],
        daily_net_forecast=_decimal_list(row.daily_net_forecast),
        cumulative_balance=_decimal_list(row.cumulative_balance),
        current_balance=money(row.current_balance),
        runway_days=row.runway_days,
        confidence_std=money(row.confidence_std),
        confidence_band=[
            ConfidenceBandPoint(low=Decimal(str(point["low"])), high=Decimal(str(point["high"])))
            for point in row.confidence_band
        ],
    )


class SqlForecastStore:
    """One ``cashflow_forecasts`` row per user, overwritten field-by-field on save."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def load(self, user_id: int) -> ForecastResult | None:
        row = self.db.scalar(select(CashflowForecast).where(CashflowForecast.user_id == user_id))
        if row is None:
            return None
        return _row_to_result(row)

    def save(self, result: ForecastResult) -> None:
        try:
            row = self.db.scalar(
                select(CashflowForecast).where(CashflowForecast.user_id == result.user_id)
            )
            if row is None:
                row = CashflowForecast(user_id=result.user_id)
                self.db.add(row)
            row.generated_at = result.generated_at
            row.horizon_days = result.horizon_days
            row.lookback_days = result.lookback_days
            row.dates = [value.isoformat() for value in result.dates]
            row.daily_net_forecast = [str(value) for value in result.daily_net_forecast]
            row.cumulative_balance = [str(value) for value in result.cumulative_balance]
            row.confidence_band = [
                {"low": str(point.low), "high": str(point.high)} for point in result.confidence_band
            ]
            row.current_balance = result.current_balance
            row.runway_days = result.runway_days
            row.confidence_std = result.confidence_std
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise ForecastPersistenceError(
                f"Could not persist cash-flow forecast for user {result.user_id}."
            ) from exc


class SqlUserActivityRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def list_activity(self) -> list[tuple[int, datetime | None]]:
        rows = self.db.execute(select(User.id, User.last_active_at).order_by(User.id.asc())).all()
        return [(user_id, as_utc(last_active_at)) for user_id, last_active_at in rows]


def sql_repositories(db: Session) -> ForecastRepositories:
    return ForecastRepositories(
        transactions=SqlTransactionRepository(db),
        balances=SqlBalanceRepository(db),
        forecasts=SqlForecastStore(db),
    )
