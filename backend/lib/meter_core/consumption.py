import logging
from calendar import monthrange
from datetime import date, timedelta
from typing import Iterable, Optional, Tuple

from .models import ConsumptionWindow, MeterReading, ReadingStatus
from .normalizer import normalize_readings
from .rounding import round_int

logger = logging.getLogger(__name__)

MIN_BASELINE_DAYS = 30
DAYS_PER_YEAR = 365


def consumption_window(readings: Iterable[MeterReading]) -> Optional[ConsumptionWindow]:
    """
    Span between the first and last reading of a series, annualized.

    Returns None for fewer than two readings or a span under 30 days, which
    would extrapolate wildly from near-duplicate dates. A negative raw delta
    (meter reset or replacement) is passed through unclamped.
    """
    series = normalize_readings(readings)
    if len(series) < 2:
        return None
    first, last = series[0], series[-1]
    day_span = (last.reading_date - first.reading_date).days
    if day_span < MIN_BASELINE_DAYS:
        logger.debug("baseline of %d days too short for meter %s", day_span, first.meter_id)
        return None
    raw_delta = last.reading_value - first.reading_value
    annualized = round_int(raw_delta / day_span * DAYS_PER_YEAR)
    return ConsumptionWindow(
        first_reading=first,
        last_reading=last,
        day_span=day_span,
        raw_delta=raw_delta,
        annualized_value=annualized,
    )


def annual_consumption(readings: Iterable[MeterReading]) -> Optional[int]:
    window = consumption_window(readings)
    if window is None:
        return None
    return window.annualized_value


def period_consumption(readings: Iterable[MeterReading], start: date, end: date) -> Optional[float]:
    """
    Consumption between the first and last reading taken after ``start`` and
    up to ``end``. Needs two readings in the window; clamped to >= 0.
    """
    window = [r for r in normalize_readings(readings) if start < r.reading_date <= end]
    if len(window) < 2:
        return None
    return max(0.0, window[-1].reading_value - window[0].reading_value)


def months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def trailing_year_consumption(readings: Iterable[MeterReading], today: date) -> Tuple[Optional[float], Optional[float]]:
    """(last 12 months, the 12 months before) consumption for one meter."""
    series = normalize_readings(readings)
    one_year_ago = months_back(today, 12)
    two_years_ago = months_back(today, 24)
    current = period_consumption(series, one_year_ago, today)
    # the prior window excludes its end date so a reading exactly one year
    # back is not counted in both
    prior = period_consumption(series, two_years_ago, one_year_ago - timedelta(days=1))
    return current, prior


def reading_status(last_reading_date: Optional[date], interval_days: int = 30,
                   today: Optional[date] = None) -> ReadingStatus:
    if last_reading_date is None:
        return ReadingStatus.OVERDUE
    today = today or date.today()
    days_since = (today - last_reading_date).days
    if days_since <= interval_days:
        return ReadingStatus.CURRENT
    if days_since <= interval_days * 1.5:
        return ReadingStatus.DUE
    return ReadingStatus.OVERDUE
