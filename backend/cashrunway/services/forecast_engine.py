from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal

from fastapi import HTTPException, status

from cashrunway.core.config import Settings, get_settings
from cashrunway.services.aggregation import aggregate_daily_net
from cashrunway.services.estimators import (
    build_date_range,
    holt_linear,
    linear_projection,
    linear_regression,
    residuals_and_std,
)
from cashrunway.services.repositories import (
    BalanceRepository,
    ConfidenceBandPoint,
    ForecastPersistenceError,
    ForecastRepositories,
    ForecastResult,
    TransactionRepository,
)
from cashrunway.utils.decimal_math import money, to_decimal


logger = logging.getLogger("cashrunway.forecast")


def validate_horizon(horizon: object, *, max_horizon: int | None = None) -> int:
    limit = max_horizon if max_horizon is not None else get_settings().max_horizon_days
    value = to_decimal(str(horizon).strip()) if isinstance(horizon, (str, int, float, Decimal)) else None
    # Range first: int() of a huge exponent would materialize every digit.
    if value is None or value < 1 or value > limit or value != value.to_integral_value():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"horizon must be between 1 and {limit}.",
        )
    return int(value)


def combine_forecasts(holt: Sequence[Decimal], linear: Sequence[Decimal]) -> list[Decimal]:
    if len(holt) != len(linear):
        raise ValueError("Estimator outputs must cover the same horizon.")
    return [money((smoothed + trend) / 2) for smoothed, trend in zip(holt, linear)]


def resolve_current_balance(
    balances: BalanceRepository,
    transactions: TransactionRepository,
    user_id: int,
) -> Decimal:
    explicit = balances.explicit_balance(user_id)
    if explicit is not None:
        return money(explicit)
    paid_inflow, paid_outflow = transactions.settled_totals(user_id)
    return money(paid_inflow - paid_outflow)


def project_balance(current_balance: Decimal, combined: Sequence[Decimal]) -> list[Decimal]:
    cumulative: list[Decimal] = []
    running = money(current_balance)
    for value in combined:
        running = money(running + value)
        cumulative.append(running)
    return cumulative


def compute_runway(cumulative: Sequence[Decimal]) -> int | None:
    """1-based day of the first projected shortfall; later recoveries do not count."""
    for index, balance in enumerate(cumulative):
        if balance < 0:
            return index + 1
    return None


def estimate_confidence_std(net: Sequence[Decimal], *, window: int = 30) -> Decimal:
    """Population std of the trailing window around its own least-squares line."""
    recent = list(net[-window:]) if window > 0 else []
    if not recent:
        return money(0)
    slope, intercept = linear_regression(list(range(len(recent))), recent)
    fitted = [intercept + slope * Decimal(index) for index in range(len(recent))]
    _, std = residuals_and_std(recent, fitted)
    return money(std)


def confidence_band(
    combined: Sequence[Decimal],
    std: Decimal,
    *,
    z: Decimal | float = 2,
) -> list[ConfidenceBandPoint]:
    spread = money(Decimal(str(z)) * std)
    return [ConfidenceBandPoint(low=money(value - spread), high=money(value + spread)) for value in combined]


def generate_forecast_for_user(
    repos: ForecastRepositories,
    user_id: int,
    *,
    lookback_days: int | None = None,
    horizon_days: int | None = None,
    now: datetime | None = None,
    settings: Settings | None = None,
    raise_on_persist_failure: bool = False,
) -> ForecastResult:
    """Run the full pipeline for one user and store the result.

    A storage failure is logged and the in-memory result returned, unless
    ``raise_on_persist_failure`` is set.
    """
    cfg = settings or get_settings()
    lookback = cfg.history_lookback_days if lookback_days is None else lookback_days
    horizon = validate_horizon(
        cfg.default_horizon_days if horizon_days is None else horizon_days,
        max_horizon=cfg.max_horizon_days,
    )
    generated_at = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    today = generated_at.date()

    history = aggregate_daily_net(repos.transactions, user_id, lookback_days=lookback, today=today)

    smoothed = holt_linear(history.net, alpha=cfg.holt_alpha, beta=cfg.holt_beta, horizon=horizon)
    trend = linear_projection(history.net, horizon, window=cfg.regression_window_days)
    combined = combine_forecasts(smoothed, trend)

    current_balance = resolve_current_balance(repos.balances, repos.transactions, user_id)
    cumulative = project_balance(current_balance, combined)
    runway = compute_runway(cumulative)

    std = estimate_confidence_std(history.net, window=cfg.regression_window_days)

    result = ForecastResult(
        user_id=user_id,
        generated_at=generated_at,
        horizon_days=horizon,
        lookback_days=lookback,
        dates=build_date_range(today, horizon),
        daily_net_forecast=combined,
        cumulative_balance=cumulative,
        current_balance=current_balance,
        runway_days=runway,
        confidence_std=std,
        confidence_band=confidence_band(combined, std, z=cfg.confidence_z),
    )

    try:
        repos.forecasts.save(result)
    except ForecastPersistenceError:
        if raise_on_persist_failure:
            raise
        logger.exception("Returning unsaved forecast for user %s.", user_id)
    else:
        logger.info(
            "Generated %s-day forecast for user %s (runway=%s, std=%s).",
            horizon,
            user_id,
            runway,
            std,
        )
    return result
