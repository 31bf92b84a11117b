from collections.abc import Generator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from cashrunway.db.session import SessionLocal
from cashrunway.models.user import User
from cashrunway.services.repositories import ForecastRepositories
from cashrunway.services.sql_repositories import sql_repositories


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    db: Session = Depends(get_db),
    x_user_id: int | None = Header(default=None),
) -> User:
    # Identity is issued upstream; this service only trusts the forwarded id.
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )
    user = db.get(User, x_user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user.",
        )
    return user


def get_forecast_repositories(db: Session = Depends(get_db)) -> ForecastRepositories:
    return sql_repositories(db)
