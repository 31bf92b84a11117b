from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import cashrunway.models  # noqa: F401  registers mappers before create_all
from cashrunway.api.rate_limit import SlidingWindowRateLimiter
from cashrunway.api.routes import api_router
from cashrunway.core.config import Settings, get_settings
from cashrunway.db.base import Base
from cashrunway.db.session import SessionLocal, engine
from cashrunway.services.seed import seed_demo_data


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger("cashrunway.api")


def _prepare_database(settings: Settings) -> None:
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=engine)
    if not settings.seed_demo_data:
        return
    with SessionLocal() as db:
        try:
            seed_demo_data(db)
        except Exception:
            db.rollback()
            logger.exception("Demo seed failed; starting without demo users.")


def create_app(settings: Settings | None = None) -> FastAPI:
    cfg = settings or get_settings()
    limiter = SlidingWindowRateLimiter(
        limit=cfg.rate_limit_requests,
        window_seconds=cfg.rate_limit_window_seconds,
    )
    # Forecast generation is the expensive path; health and docs stay unthrottled.
    limited_prefix = f"{cfg.api_prefix}/forecasts"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _prepare_database(cfg)
        logger.info("%s ready.", cfg.app_name)
        yield
        engine.dispose()

    app = FastAPI(title=cfg.app_name, debug=cfg.debug, lifespan=lifespan)
    app.state.rate_limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def throttle_forecasts(request: Request, call_next):
        if request.url.path.startswith(limited_prefix):
            client = request.client.host if request.client else "unknown"
            if not limiter.allow(client, time.monotonic()):
                logger.warning("Rate limit hit for %s on %s.", client, request.url.path)
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too many forecast requests. Please retry later."},
                )

        started = time.monotonic()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s %.2fms",
            request.method,
            request.url.path,
            response.status_code,
            (time.monotonic() - started) * 1000,
        )
        return response

    @app.get("/healthz")
    def healthz() -> dict:
        return {"ok": True, "timestamp": datetime.now(timezone.utc).isoformat()}

    app.include_router(api_router, prefix=cfg.api_prefix)
    return app


app = create_app()
