from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from cashrunway.models.enums import TransactionStatus
from cashrunway.models.transactions import Expense, Invoice, WalletBalance
from cashrunway.models.user import User
from cashrunway.utils.decimal_math import money


logger = logging.getLogger("cashrunway.seed")

DEMO_HISTORY_DAYS = 120


def _get_or_create_user(
    db: Session,
    *,
    email: str,
    full_name: str,
    last_active_at: datetime | None,
) -> tuple[User, bool]:
    user = db.scalar(select(User).where(User.email == email))
    if user is not None:
        return user, False

    user = User(
        email=email,
        full_name=full_name,
        is_active=True,
        last_active_at=last_active_at,
    )
    db.add(user)
    db.flush()
    return user, True


def _seed_history(
    db: Session,
    *,
    user: User,
    today: date,
    weekly_revenue: Decimal,
    daily_burn: Decimal,
    monthly_rent: Decimal,
) -> None:
    for offset in range(DEMO_HISTORY_DAYS, -1, -1):
        day = today - timedelta(days=offset)
        settled = offset > 14
        if day.weekday() == 4:
            # Revenue drifts down a little each week.
            drift = money(Decimal(offset) * Decimal("2.50"))
            db.add(
                Invoice(
                    user_id=user.id,
                    amount=money(weekly_revenue + drift),
                    tx_date=day,
                    status=TransactionStatus.paid if settled else TransactionStatus.pending,
                    customer="Demo Customer",
                    description=f"Weekly services {day.isoformat()}",
                )
            )
        db.add(
            Expense(
                user_id=user.id,
                amount=money(daily_burn),
                tx_date=day,
                status=TransactionStatus.paid if settled else TransactionStatus.pending,
                vendor="Operations",
                category="opex",
            )
        )
        if day.day == 1:
            db.add(
                Expense(
                    user_id=user.id,
                    amount=money(monthly_rent),
                    tx_date=day,
                    status=TransactionStatus.paid if settled else TransactionStatus.pending,
                    vendor="Landlord",
                    category="rent",
                )
            )
    # An undated draft; aggregation must ignore it.
    db.add(
        Invoice(
            user_id=user.id,
            amount=money("999.00"),
            tx_date=None,
            status=TransactionStatus.draft,
            customer="Prospect",
            description="Unsent quote",
        )
    )


def seed_demo_data(db: Session, *, today: date | None = None) -> None:
    """Create demo businesses with 120 days of invoices and expenses.

    Idempotent: existing demo users are left untouched.
    """
    now = datetime.now(timezone.utc)
    current_day = today or now.date()

    healthy, created = _get_or_create_user(
        db,
        email="owner@healthy.example",
        full_name="Healthy Bakery",
        last_active_at=now,
    )
    if created:
        _seed_history(
            db,
            user=healthy,
            today=current_day,
            weekly_revenue=money("2400.00"),
            daily_burn=money("180.00"),
            monthly_rent=money("1500.00"),
        )
        db.add(WalletBalance(user_id=healthy.id, amount=money("18000.00")))

    burning, created = _get_or_create_user(
        db,
        email="founder@burning.example",
        full_name="Burning Startup",
        last_active_at=now - timedelta(days=3),
    )
    if created:
        # No wallet snapshot: balance falls back to paid invoices minus paid expenses.
        _seed_history(
            db,
            user=burning,
            today=current_day,
            weekly_revenue=money("900.00"),
            daily_burn=money("260.00"),
            monthly_rent=money("3000.00"),
        )

    _get_or_create_user(
        db,
        email="dormant@idle.example",
        full_name="Dormant Shop",
        last_active_at=now - timedelta(days=200),
    )

    db.commit()
    logger.info("Demo data ready.")
