from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from cashrunway.core.config import Settings
from cashrunway.models.enums import TransactionStatus
from cashrunway.models.forecast import CashflowForecast
from cashrunway.models.transactions import Expense, Invoice, WalletBalance
from cashrunway.models.user import User
from cashrunway.services.forecast_cache import get_or_generate_forecast
from cashrunway.services.forecast_engine import generate_forecast_for_user
from cashrunway.services.repositories import ForecastPersistenceError
from cashrunway.services.seed import seed_demo_data
from cashrunway.services.sql_repositories import (
    SqlBalanceRepository,
    SqlForecastStore,
    SqlTransactionRepository,
    SqlUserActivityRepository,
    as_utc,
    sql_repositories,
)
from cashrunway.utils.decimal_math import money
from fakes import sqlite_session


TODAY = date(2026, 10, 17)
NOW = datetime(2026, 10, 17, 8, 0, tzinfo=timezone.utc)
SETTINGS = Settings(database_url="sqlite+pysqlite:///:memory:")


def _user(db, email: str = "owner@test.com", **kwargs) -> User:
    user = User(email=email, full_name="Owner", is_active=True, **kwargs)
    db.add(user)
    db.flush()
    return user


def test_transaction_points_are_limited_to_window_and_dated_records() -> None:
    db = sqlite_session()
    user = _user(db)
    other = _user(db, email="other@test.com")
    db.add_all(
        [
            Invoice(user_id=user.id, amount=money("100.00"), tx_date=TODAY, status=TransactionStatus.paid),
            Invoice(user_id=user.id, amount=money("70.00"), tx_date=None, status=TransactionStatus.draft),
            Invoice(user_id=user.id, amount=money("30.00"), tx_date=TODAY - timedelta(days=400)),
            Invoice(user_id=other.id, amount=money("5.00"), tx_date=TODAY),
            Expense(user_id=user.id, amount=money("40.00"), tx_date=TODAY - timedelta(days=1)),
        ]
    )
    db.flush()

    repo = SqlTransactionRepository(db)
    inflows = repo.inflows(user.id, TODAY - timedelta(days=120), TODAY)
    outflows = repo.outflows(user.id, TODAY - timedelta(days=120), TODAY)

    assert [(point.on, point.amount) for point in inflows] == [(TODAY, money("100.00"))]
    assert [(point.on, point.amount) for point in outflows] == [(TODAY - timedelta(days=1), money("40.00"))]


def test_settled_totals_cover_all_history_and_only_paid_records() -> None:
    db = sqlite_session()
    user = _user(db)
    db.add_all(
        [
            Invoice(user_id=user.id, amount=money("100.00"), tx_date=TODAY, status=TransactionStatus.paid),
            Invoice(user_id=user.id, amount=money("900.00"), tx_date=date(2020, 1, 1), status=TransactionStatus.paid),
            Invoice(user_id=user.id, amount=money("50.00"), tx_date=TODAY, status=TransactionStatus.pending),
            Expense(user_id=user.id, amount=money("300.00"), tx_date=TODAY, status=TransactionStatus.paid),
            Expense(user_id=user.id, amount=money("80.00"), tx_date=TODAY, status=TransactionStatus.void),
        ]
    )
    db.flush()

    assert SqlTransactionRepository(db).settled_totals(user.id) == (money("1000.00"), money("300.00"))


def test_explicit_balance_snapshot() -> None:
    db = sqlite_session()
    user = _user(db)
    balances = SqlBalanceRepository(db)
    assert balances.explicit_balance(user.id) is None

    db.add(WalletBalance(user_id=user.id, amount=money("1234.50")))
    db.flush()
    assert balances.explicit_balance(user.id) == money("1234.50")


def test_forecast_store_round_trip_and_merge_write_keeps_annotations() -> None:
    db = sqlite_session()
    user = _user(db)
    db.add(Invoice(user_id=user.id, amount=money("10.00"), tx_date=TODAY, status=TransactionStatus.paid))
    db.commit()
    repos = sql_repositories(db)

    first = generate_forecast_for_user(repos, user.id, horizon_days=10, now=NOW, settings=SETTINGS)
    row = db.scalar(select(CashflowForecast).where(CashflowForecast.user_id == user.id))
    row.annotations = {"advice": "Chase overdue invoices."}
    db.commit()

    second = generate_forecast_for_user(
        repos, user.id, horizon_days=20, now=NOW + timedelta(hours=1), settings=SETTINGS
    )
    rows = list(db.scalars(select(CashflowForecast)).all())
    assert len(rows) == 1
    assert rows[0].annotations == {"advice": "Chase overdue invoices."}
    assert rows[0].horizon_days == 20

    loaded = SqlForecastStore(db).load(user.id)
    assert loaded is not None
    assert loaded.generated_at.tzinfo is not None
    assert loaded.generated_at == second.generated_at
    assert loaded.dates == second.dates
    assert loaded.daily_net_forecast == second.daily_net_forecast
    assert loaded.cumulative_balance == second.cumulative_balance
    assert loaded.confidence_band == second.confidence_band
    assert loaded.current_balance == money("10.00")
    assert first.horizon_days == 10


def test_cached_sql_forecast_is_served_within_freshness_window() -> None:
    db = sqlite_session()
    user = _user(db)
    db.add(Invoice(user_id=user.id, amount=money("25.00"), tx_date=TODAY, status=TransactionStatus.paid))
    db.commit()
    repos = sql_repositories(db)

    first = get_or_generate_forecast(repos, user.id, now=NOW, settings=SETTINGS)
    db.add(Invoice(user_id=user.id, amount=money("5000.00"), tx_date=TODAY, status=TransactionStatus.paid))
    db.commit()
    cached = get_or_generate_forecast(repos, user.id, now=NOW + timedelta(hours=6), settings=SETTINGS)

    assert cached.generated_at == first.generated_at
    assert cached.daily_net_forecast == first.daily_net_forecast
    assert cached.current_balance == money("25.00")


def test_user_activity_timestamps_are_normalized_to_utc() -> None:
    db = sqlite_session()
    seen = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
    active = _user(db, last_active_at=seen)
    never = _user(db, email="never@test.com")
    db.commit()

    activity = dict(SqlUserActivityRepository(db).list_activity())
    assert activity[active.id] == seen
    assert activity[active.id].tzinfo is not None
    assert activity[never.id] is None


def test_as_utc_treats_naive_values_as_utc() -> None:
    assert as_utc(datetime(2026, 1, 1, 5, 0)) == datetime(2026, 1, 1, 5, 0, tzinfo=timezone.utc)
    assert as_utc(None) is None


def test_seeded_burning_business_runs_out_of_cash_immediately() -> None:
    db = sqlite_session()
    seed_demo_data(db, today=TODAY)
    seed_demo_data(db, today=TODAY)

    users = {user.email: user for user in db.scalars(select(User)).all()}
    assert len(users) == 3
    burning = users["founder@burning.example"]

    result = generate_forecast_for_user(
        sql_repositories(db), burning.id, horizon_days=90, now=NOW, settings=SETTINGS
    )
    assert result.current_balance < 0
    assert result.runway_days == 1
    assert len(result.cumulative_balance) == 90
    assert result.confidence_std > Decimal("0")


def test_storage_error_on_save_keeps_result_and_leaves_cache_empty(monkeypatch) -> None:
    db = sqlite_session()
    user = _user(db)
    db.commit()

    def broken_commit() -> None:
        raise OperationalError("UPDATE cashflow_forecasts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", broken_commit)
    store = SqlForecastStore(db)
    result = generate_forecast_for_user(
        sql_repositories(db), user.id, horizon_days=15, now=NOW, settings=SETTINGS
    )
    assert len(result.cumulative_balance) == 15

    with pytest.raises(ForecastPersistenceError):
        store.save(result)
    monkeypatch.undo()
    assert store.load(user.id) is None
