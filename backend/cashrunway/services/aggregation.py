from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from cashrunway.models.enums import CashFlowDirection
from cashrunway.services.repositories import TransactionPoint, TransactionRepository
from cashrunway.utils.decimal_math import to_decimal


logger = logging.getLogger("cashrunway.aggregation")


@dataclass(frozen=True)
class DailyNetSeries:
    dates: list[date]
    net: list[Decimal]

    def __len__(self) -> int:
        return len(self.dates)


def _empty_buckets(start: date, days: int) -> dict[date, dict[CashFlowDirection, Decimal]]:
    return {
        start + timedelta(days=offset): {
            CashFlowDirection.inflow: Decimal("0"),
            CashFlowDirection.outflow: Decimal("0"),
        }
        for offset in range(days + 1)
    }


def _apply_points(
    buckets: dict[date, dict[CashFlowDirection, Decimal]],
    points: Iterable[TransactionPoint],
    direction: CashFlowDirection,
) -> int:
    skipped = 0
    for point in points:
        on = point.on
        if isinstance(on, datetime):
            on = on.date()
        if not isinstance(on, date):
            skipped += 1
            continue
        bucket = buckets.get(on)
        if bucket is None:
            skipped += 1
            continue
        amount = to_decimal(point.amount)
        if amount is None:
            skipped += 1
            continue
        bucket[direction] += amount
    return skipped


def aggregate_daily_net(
    transactions: TransactionRepository,
    user_id: int,
    *,
    lookback_days: int,
    today: date,
) -> DailyNetSeries:
    """Net cash per calendar day over ``[today - lookback_days, today]``.

    Days without records are zero. Records with no usable date or amount are
    dropped rather than failing the whole aggregation.
    """
    if lookback_days < 0:
        raise ValueError("lookback_days must be non-negative.")
    start = today - timedelta(days=lookback_days)
    buckets = _empty_buckets(start, lookback_days)

    skipped = _apply_points(buckets, transactions.inflows(user_id, start, today), CashFlowDirection.inflow)
    skipped += _apply_points(buckets, transactions.outflows(user_id, start, today), CashFlowDirection.outflow)
    if skipped:
        logger.debug("Skipped %s unusable transaction records for user %s.", skipped, user_id)

    dates = sorted(buckets)
    net = [
        buckets[day][CashFlowDirection.inflow] - buckets[day][CashFlowDirection.outflow]
        for day in dates
    ]
    return DailyNetSeries(dates=dates, net=net)
