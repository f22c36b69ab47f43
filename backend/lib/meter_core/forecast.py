"""
Linear trend forecast over monthly aggregates.

The trend thresholds compare the raw slope (units per month) against +/-0.5,
so large-volume meters almost always read as rising or falling. That is a
known limitation of the labels, the projection itself is unaffected.
"""
from typing import Optional, Sequence, Tuple

from .models import ForecastResult

MIN_POINTS = 3
DEFAULT_HORIZON = 6
TREND_THRESHOLD = 0.5


def linear_fit(values: Sequence[float]) -> Tuple[float, float]:
    """Ordinary least squares of value against index 0..n-1 -> (slope, intercept)."""
    n = len(values)
    x_mean = (n - 1) / 2
    y_mean = sum(values) / n
    sxy = sum((x - x_mean) * (y - y_mean) for x, y in enumerate(values))
    sxx = sum((x - x_mean) ** 2 for x in range(n))
    slope = sxy / sxx if sxx else 0.0
    return slope, y_mean - slope * x_mean


def trend_label(slope: float) -> str:
    if slope > TREND_THRESHOLD:
        return "rising"
    if slope < -TREND_THRESHOLD:
        return "falling"
    return "stable"


def forecast(monthly_totals: Sequence[float], horizon: int = DEFAULT_HORIZON) -> Optional[ForecastResult]:
    values = [float(v) for v in monthly_totals]
    if len(values) < MIN_POINTS:
        return None
    n = len(values)
    slope, intercept = linear_fit(values)
    projection = [max(0.0, intercept + slope * x) for x in range(n, n + horizon)]
    annual = max(0.0, 12 * (intercept + slope * (n + 5)))
    return ForecastResult(
        slope=slope,
        intercept=intercept,
        trend=trend_label(slope),
        projection=projection,
        annual_forecast=annual,
    )
