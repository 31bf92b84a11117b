from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from cashrunway.core.config import Settings, get_settings
from cashrunway.models.forecast import ForecastBatchRun
from cashrunway.services.forecast_engine import generate_forecast_for_user
from cashrunway.services.sql_repositories import SqlUserActivityRepository, sql_repositories


logger = logging.getLogger("cashrunway.scheduler")

SessionFactory = Callable[[], Session]


@dataclass
class BatchReport:
    started_at: datetime
    finished_at: datetime | None = None
    eligible: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    succeeded: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "eligible": len(self.eligible),
            "skipped": len(self.skipped),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "failures": {str(user_id): message for user_id, message in self.failed.items()},
        }


def is_recently_active(
    last_active_at: datetime | None,
    *,
    now: datetime,
    inactive_after_days: int,
) -> bool:
    # Users that never recorded activity stay eligible.
    if last_active_at is None:
        return True
    return now - last_active_at <= timedelta(days=inactive_after_days)


def select_eligible_users(
    activity: list[tuple[int, datetime | None]],
    *,
    now: datetime,
    inactive_after_days: int,
) -> tuple[list[int], list[int]]:
    eligible: list[int] = []
    skipped: list[int] = []
    for user_id, last_active_at in activity:
        if is_recently_active(last_active_at, now=now, inactive_after_days=inactive_after_days):
            eligible.append(user_id)
        else:
            skipped.append(user_id)
    return eligible, skipped


def _generate_for_user(session_factory: SessionFactory, user_id: int, now: datetime, cfg: Settings) -> None:
    with session_factory() as db:
        generate_forecast_for_user(
            sql_repositories(db),
            user_id,
            lookback_days=cfg.history_lookback_days,
            horizon_days=cfg.default_horizon_days,
            now=now,
            settings=cfg,
            raise_on_persist_failure=True,
        )


def _record_run(session_factory: SessionFactory, report: BatchReport) -> None:
    summary = report.as_dict()
    with session_factory() as db:
        db.add(
            ForecastBatchRun(
                started_at=report.started_at,
                finished_at=report.finished_at,
                eligible=summary["eligible"],
                skipped=summary["skipped"],
                succeeded=summary["succeeded"],
                failed=summary["failed"],
                failures=summary["failures"] or None,
            )
        )
        db.commit()


def run_daily_forecasts(
    session_factory: SessionFactory,
    *,
    now: datetime | None = None,
    max_workers: int | None = None,
    settings: Settings | None = None,
) -> BatchReport:
    """Regenerate the default-horizon forecast for every recently active user.

    Each user runs in its own worker with its own session. A failure is
    logged and reported; it never stops the remaining users.
    """
    cfg = settings or get_settings()
    started = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    report = BatchReport(started_at=started)

    with session_factory() as db:
        activity = SqlUserActivityRepository(db).list_activity()
    report.eligible, report.skipped = select_eligible_users(
        activity,
        now=started,
        inactive_after_days=cfg.inactive_user_days,
    )
    logger.info(
        "Daily forecast run: %s eligible, %s skipped as inactive.",
        len(report.eligible),
        len(report.skipped),
    )

    workers = max(1, max_workers or cfg.scheduler_max_workers)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="forecast") as executor:
        futures = {
            executor.submit(_generate_for_user, session_factory, user_id, started, cfg): user_id
            for user_id in report.eligible
        }
        for future in as_completed(futures):
            user_id = futures[future]
            try:
                future.result()
            except Exception as exc:
                logger.exception("Forecast failed for user %s.", user_id)
                report.failed[user_id] = str(exc) or exc.__class__.__name__
            else:
                report.succeeded.append(user_id)

    report.succeeded.sort()
    report.finished_at = datetime.now(timezone.utc)
    try:
        _record_run(session_factory, report)
    except Exception:
        logger.exception("Could not record forecast batch run summary.")
    logger.info(
        "Daily forecast run finished: %s succeeded, %s failed.",
        len(report.succeeded),
        len(report.failed),
    )
    return report


def seconds_until_next_run(now: datetime, *, hour_utc: int) -> float:
    current = now.astimezone(timezone.utc)
    target = current.replace(hour=hour_utc, minute=0, second=0, microsecond=0)
    if target <= current:
        target += timedelta(days=1)
    return (target - current).total_seconds()
