import logging
import math
from datetime import date, datetime, timezone
from numbers import Real
from typing import Iterable, List

from .errors import ReadingValidationError
from .models import MeterReading

logger = logging.getLogger(__name__)


def validate_reading(reading: MeterReading) -> MeterReading:
    """
    Check a single reading and return it (or a copy with its date coerced).

    A datetime reading_date is reduced to its calendar date. Negative values,
    non-numeric values, non-date dates and confidences outside 0..1 raise
    ReadingValidationError.
    """
    value = reading.reading_value
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ReadingValidationError(f"reading_value must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ReadingValidationError(f"reading_value must be finite, got {value!r}")
    if value < 0:
        raise ReadingValidationError(
            f"reading_value must be >= 0 (meter {reading.meter_id}, {reading.reading_date})"
        )
    if reading.confidence is not None and not 0 <= reading.confidence <= 1:
        raise ReadingValidationError(f"confidence must be within 0..1, got {reading.confidence!r}")

    reading_date = reading.reading_date
    if isinstance(reading_date, datetime):
        return MeterReading(
            meter_id=reading.meter_id,
            reading_date=reading_date.date(),
            reading_value=value,
            source=reading.source,
            confidence=reading.confidence,
            created_at=reading.created_at,
        )
    if not isinstance(reading_date, date):
        raise ReadingValidationError(f"reading_date must be a date, got {reading_date!r}")
    return reading


def sort_readings(readings: Iterable[MeterReading]) -> List[MeterReading]:
    """Ascending by reading_date; same-date readings keep their input order."""
    return sorted(readings, key=lambda r: r.reading_date)


def _created_rank(reading: MeterReading):
    # readings without created_at rank as the oldest
    created = reading.created_at
    if created is None:
        return (0, datetime.min)
    if created.tzinfo is not None:
        created = created.astimezone(timezone.utc).replace(tzinfo=None)
    return (1, created)


def dedupe_by_date(readings: List[MeterReading]) -> List[MeterReading]:
    """
    Collapse a sorted series to one reading per date.

    The latest-created reading wins; with equal (or missing) created_at the
    later one in the series wins.
    """
    result: List[MeterReading] = []
    for reading in readings:
        if result and result[-1].reading_date == reading.reading_date:
            if _created_rank(reading) >= _created_rank(result[-1]):
                result[-1] = reading
            continue
        result.append(reading)
    if len(result) < len(readings):
        logger.debug("dropped %d same-date readings", len(readings) - len(result))
    return result


def normalize_readings(readings: Iterable[MeterReading], dedupe: bool = True) -> List[MeterReading]:
    """
    Validate, sort and (by default) de-duplicate one meter's readings.

    The input is never mutated. Negative deltas between consecutive readings
    are kept, they may be meter resets or replacements.
    """
    checked = [validate_reading(r) for r in readings]
    ordered = sort_readings(checked)
    if dedupe:
        return dedupe_by_date(ordered)
    return ordered
