from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class HealthResponse(BaseModel):
    ok: bool
    service: str
    timestamp: datetime


Money = Decimal
