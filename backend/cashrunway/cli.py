from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

import click
import uvicorn

import cashrunway.models  # noqa: F401
from cashrunway.core.config import get_settings
from cashrunway.db.base import Base
from cashrunway.db.session import SessionLocal, engine
from cashrunway.services.scheduler import run_daily_forecasts, seconds_until_next_run
from cashrunway.services.seed import seed_demo_data


logger = logging.getLogger("cashrunway.cli")


@click.group()
def main():
    """CashRunway batch utilities"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@main.command("run-daily")
@click.option("--loop", is_flag=True, default=False, help="Keep running, once per day at the configured UTC hour")
@click.option("--workers", type=int, default=None, help="Worker pool size (defaults to SCHEDULER_MAX_WORKERS)")
def run_daily(loop: bool, workers: int | None):
    """Regenerate forecasts for all recently active users."""
    settings = get_settings()
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=engine)

    while True:
        report = run_daily_forecasts(SessionLocal, max_workers=workers, settings=settings)
        click.echo(
            f"Forecast run: {len(report.succeeded)} succeeded, {len(report.failed)} failed, "
            f"{len(report.skipped)} skipped."
        )
        if not loop:
            break
        delay = seconds_until_next_run(datetime.now(timezone.utc), hour_utc=settings.scheduler_run_hour_utc)
        logger.info("Next forecast run in %.0f seconds.", delay)
        time.sleep(delay)


@main.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", type=int, default=8000, show_default=True)
@click.option("--reload", is_flag=True, default=False, help="Restart on code changes (development only)")
def serve(host: str, port: int, reload: bool):
    """Serve the forecast API."""
    uvicorn.run("cashrunway.main:app", host=host, port=port, reload=reload)


@main.command("seed")
def seed():
    """Load demo users, invoices and expenses."""
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        seed_demo_data(db)
    click.echo("Demo data seeded successfully.")


if __name__ == "__main__":
    main()
