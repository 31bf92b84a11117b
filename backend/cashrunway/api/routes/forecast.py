from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from cashrunway.api.deps import get_current_user, get_db, get_forecast_repositories
from cashrunway.models.forecast import ForecastBatchRun
from cashrunway.models.user import User
from cashrunway.schemas.forecast import CashflowForecastResponse, ForecastBatchRunOut
from cashrunway.services.forecast_cache import get_or_generate_forecast
from cashrunway.services.repositories import ForecastRepositories


router = APIRouter(prefix="/forecasts", tags=["forecasts"])


@router.get("/cashflow", response_model=CashflowForecastResponse)
def get_cashflow_forecast(
    horizon: int = Query(default=90, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    repos: ForecastRepositories = Depends(get_forecast_repositories),
) -> CashflowForecastResponse:
    result = get_or_generate_forecast(repos, current_user.id, horizon_days=horizon)
    return CashflowForecastResponse.model_validate(result)


@router.post("/cashflow/refresh", response_model=CashflowForecastResponse)
def refresh_cashflow_forecast(
    horizon: int = Query(default=90, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    repos: ForecastRepositories = Depends(get_forecast_repositories),
) -> CashflowForecastResponse:
    result = get_or_generate_forecast(repos, current_user.id, horizon_days=horizon, force=True)
    return CashflowForecastResponse.model_validate(result)


@router.get("/batch-runs/latest", response_model=ForecastBatchRunOut)
def get_latest_batch_run(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ForecastBatchRunOut:
    run = db.scalar(select(ForecastBatchRun).order_by(ForecastBatchRun.id.desc()).limit(1))
    if run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No batch run recorded yet.")
    payload = ForecastBatchRunOut.model_validate(run)
    # Other users' failure messages stay private; counts remain global.
    own_failure = (run.failures or {}).get(str(current_user.id))
    payload.failures = {str(current_user.id): own_failure} if own_failure is not None else None
    return payload
