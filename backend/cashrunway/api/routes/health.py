from datetime import datetime, timezone

from fastapi import APIRouter

from cashrunway.core.config import get_settings
from cashrunway.schemas.common import HealthResponse


router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(
        ok=True,
        service=get_settings().app_name,
        timestamp=datetime.now(timezone.utc),
    )
