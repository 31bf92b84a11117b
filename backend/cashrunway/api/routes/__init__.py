from fastapi import APIRouter

from cashrunway.api.routes import forecast, health


api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(forecast.router)
