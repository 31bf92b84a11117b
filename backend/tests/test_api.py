from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from cashrunway.api.deps import get_db
from cashrunway.main import app
from cashrunway.models.enums import TransactionStatus
from cashrunway.models.forecast import ForecastBatchRun
from cashrunway.models.transactions import Expense, WalletBalance
from cashrunway.models.user import User
from cashrunway.utils.decimal_math import money
from fakes import sqlite_session_factory


@pytest.fixture()
def client_and_user():
    factory = sqlite_session_factory()
    with factory() as db:
        user = User(email="api@test.com", full_name="API Owner", is_active=True)
        disabled = User(email="off@test.com", full_name="Disabled", is_active=False)
        db.add_all([user, disabled])
        db.flush()
        db.add(WalletBalance(user_id=user.id, amount=money("300.00")))
        today = datetime.now(timezone.utc).date()
        db.add_all(
            [
                Expense(
                    user_id=user.id,
                    amount=money("25.00"),
                    tx_date=today - timedelta(days=offset),
                    status=TransactionStatus.paid,
                )
                for offset in range(60)
            ]
        )
        db.commit()
        user_id, disabled_id = user.id, disabled.id

    def override_get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app), user_id, disabled_id
    finally:
        app.dependency_overrides.clear()


def test_forecast_requires_authentication(client_and_user) -> None:
    client, _, disabled_id = client_and_user
    assert client.get("/api/v1/forecasts/cashflow").status_code == 401
    response = client.get("/api/v1/forecasts/cashflow", headers={"X-User-Id": str(disabled_id)})
    assert response.status_code == 401
    assert client.get("/api/v1/forecasts/cashflow", headers={"X-User-Id": "9999"}).status_code == 401


@pytest.mark.parametrize("horizon", ["0", "366", "abc"])
def test_invalid_horizon_is_rejected(client_and_user, horizon: str) -> None:
    client, user_id, _ = client_and_user
    response = client.get(
        "/api/v1/forecasts/cashflow",
        params={"horizon": horizon},
        headers={"X-User-Id": str(user_id)},
    )
    assert response.status_code == 422


def test_forecast_returns_runway_for_steady_burn(client_and_user) -> None:
    client, user_id, _ = client_and_user
    response = client.get(
        "/api/v1/forecasts/cashflow",
        params={"horizon": 30},
        headers={"X-User-Id": str(user_id)},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["horizon_days"] == 30
    assert len(payload["dates"]) == 30
    assert len(payload["daily_net_forecast"]) == 30
    assert len(payload["cumulative_balance"]) == 30
    assert len(payload["confidence_band"]) == 30
    assert Decimal(payload["current_balance"]) == money("300.00")
    # 61 of the 121 history days carry a 25.00 expense, so the projection burns cash.
    assert payload["runway_days"] is not None


def test_cached_forecast_is_reused_until_refresh(client_and_user) -> None:
    client, user_id, _ = client_and_user
    headers = {"X-User-Id": str(user_id)}
    first = client.get("/api/v1/forecasts/cashflow", headers=headers).json()
    second = client.get("/api/v1/forecasts/cashflow", headers=headers).json()
    assert second["generated_at"] == first["generated_at"]

    refreshed = client.post("/api/v1/forecasts/cashflow/refresh", headers=headers)
    assert refreshed.status_code == 200
    assert refreshed.json()["generated_at"] != first["generated_at"]


def test_latest_batch_run_is_404_before_any_run(client_and_user) -> None:
    client, user_id, _ = client_and_user
    response = client.get("/api/v1/forecasts/batch-runs/latest", headers={"X-User-Id": str(user_id)})
    assert response.status_code == 404


def test_health_endpoints() -> None:
    client = TestClient(app)
    assert client.get("/healthz").json()["ok"] is True
    assert client.get("/api/v1/health").json()["ok"] is True


def test_latest_batch_run_hides_other_users_failures() -> None:
    factory = sqlite_session_factory()
    with factory() as db:
        owner = User(email="owner@test.com", full_name="Owner", is_active=True)
        other = User(email="other@test.com", full_name="Other", is_active=True)
        db.add_all([owner, other])
        db.flush()
        started = datetime(2026, 10, 17, 2, 0, tzinfo=timezone.utc)
        db.add(
            ForecastBatchRun(
                started_at=started,
                finished_at=started + timedelta(minutes=3),
                eligible=2,
                skipped=0,
                succeeded=0,
                failed=2,
                failures={str(owner.id): "ledger unavailable", str(other.id): "bank feed token expired"},
            )
        )
        db.commit()
        owner_id, other_id = owner.id, other.id

    def override_get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        client = TestClient(app)
        response = client.get("/api/v1/forecasts/batch-runs/latest", headers={"X-User-Id": str(owner_id)})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    payload = response.json()
    assert payload["failed"] == 2
    assert payload["failures"] == {str(owner_id): "ledger unavailable"}
    assert str(other_id) not in payload["failures"]
    assert "bank feed token expired" not in response.text
