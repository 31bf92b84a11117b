from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from cashrunway.core.config import Settings, get_settings
from cashrunway.services.forecast_engine import generate_forecast_for_user, validate_horizon
from cashrunway.services.repositories import ForecastRepositories, ForecastResult


logger = logging.getLogger("cashrunway.forecast.cache")


def is_fresh(
    cached: ForecastResult | None,
    *,
    horizon_days: int,
    now: datetime,
    settings: Settings | None = None,
) -> bool:
    # A default-horizon read accepts whatever horizon is cached.
    if cached is None or cached.generated_at is None:
        return False
    cfg = settings or get_settings()
    age = now - cached.generated_at
    if age >= timedelta(hours=cfg.forecast_freshness_hours):
        return False
    return cached.horizon_days == horizon_days or horizon_days == cfg.default_horizon_days


def get_or_generate_forecast(
    repos: ForecastRepositories,
    user_id: int,
    *,
    horizon_days: object = None,
    now: datetime | None = None,
    force: bool = False,
    settings: Settings | None = None,
) -> ForecastResult:
    cfg = settings or get_settings()
    horizon = validate_horizon(
        cfg.default_horizon_days if horizon_days is None else horizon_days,
        max_horizon=cfg.max_horizon_days,
    )
    current = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)

    if not force:
        cached = repos.forecasts.load(user_id)
        if is_fresh(cached, horizon_days=horizon, now=current, settings=cfg):
            logger.debug("Serving cached forecast for user %s.", user_id)
            return cached

    return generate_forecast_for_user(
        repos,
        user_id,
        lookback_days=cfg.history_lookback_days,
        horizon_days=horizon,
        now=current,
        settings=cfg,
    )
