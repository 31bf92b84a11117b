from __future__ import annotations

from collections.abc import Sequence
from datetime import date, timedelta
from decimal import Decimal

Number = Decimal | int | float


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def linear_regression(xs: Sequence[Number], ys: Sequence[Number]) -> tuple[Decimal, Decimal]:
    """Ordinary least squares fit of ``y ~ intercept + slope * x``.

    Returns ``(slope, intercept)``. A degenerate x spread (one point, or all x
    equal) yields a flat line through the mean.
    """
    n = min(len(xs), len(ys))
    if n == 0:
        return Decimal("0"), Decimal("0")
    x_values = [_dec(value) for value in xs[:n]]
    y_values = [_dec(value) for value in ys[:n]]
    mean_x = sum(x_values) / Decimal(n)
    mean_y = sum(y_values) / Decimal(n)
    numerator = Decimal("0")
    denominator = Decimal("0")
    for x, y in zip(x_values, y_values):
        numerator += (x - mean_x) * (y - mean_y)
        denominator += (x - mean_x) ** 2
    slope = Decimal("0") if denominator == 0 else numerator / denominator
    intercept = mean_y - slope * mean_x
    return slope, intercept


def linear_projection(series: Sequence[Number], horizon: int, *, window: int = 30) -> list[Decimal]:
    # Fit uses local indices 0..k-1 of the trailing window while projection
    # continues from the full series' last index.
    recent = list(series[-window:]) if window > 0 else []
    slope, intercept = linear_regression(list(range(len(recent))), recent)
    last_index = len(series) - 1
    return [intercept + slope * Decimal(last_index + step) for step in range(1, horizon + 1)]


def holt_linear(
    series: Sequence[Number],
    *,
    alpha: Number = 0.3,
    beta: Number = 0.1,
    horizon: int = 30,
) -> list[Decimal]:
    """Holt's linear (double) exponential smoothing forecast ``horizon`` steps ahead."""
    if len(series) == 0:
        return [Decimal("0")] * horizon
    if len(series) == 1:
        return [_dec(series[0])] * horizon

    a = _dec(alpha)
    b = _dec(beta)
    values = [_dec(value) for value in series]
    level = values[0]
    trend = values[1] - values[0]
    for value in values[1:]:
        previous_level = level
        level = a * value + (1 - a) * (level + trend)
        trend = b * (level - previous_level) + (1 - b) * trend

    return [level + Decimal(step) * trend for step in range(1, horizon + 1)]


def build_date_range(start: date, days: int) -> list[date]:
    return [start + timedelta(days=offset) for offset in range(days)]


def residuals_and_std(
    actual: Sequence[Number],
    fitted: Sequence[Number],
) -> tuple[list[Decimal], Decimal]:
    """Residuals over the common prefix and their population standard deviation."""
    n = min(len(actual), len(fitted))
    if n == 0:
        return [], Decimal("0")
    residuals = [_dec(actual[index]) - _dec(fitted[index]) for index in range(n)]
    mean = sum(residuals) / Decimal(n)
    variance = sum((value - mean) ** 2 for value in residuals) / Decimal(n)
    return residuals, (variance.sqrt() if variance > 0 else Decimal("0"))
