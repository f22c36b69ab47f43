import csv
import math
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from io import StringIO
from typing import Any, Dict, List, Optional

from .errors import ReadingValidationError
from .models import Building, Meter, MeterReading, MeterType, ReadingSource, Unit


def parse_date(text: Any) -> date:
    """ISO date or timestamp (``2025-01-01`` / ``2025-01-01T08:00:00Z``) -> date."""
    if isinstance(text, datetime):
        return text.date()
    if isinstance(text, date):
        return text
    if not isinstance(text, str) or not text.strip():
        raise ReadingValidationError(f"Invalid date: {text!r}")
    value = text.strip().replace("Z", "+00:00")
    try:
        if "T" in value or " " in value:
            return datetime.fromisoformat(value).date()
        return date.fromisoformat(value)
    except ValueError:
        raise ReadingValidationError(f"Invalid date: {text!r}")


def _parse_number(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ReadingValidationError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ReadingValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ReadingValidationError(f"{name} must be finite, got {value!r}")
    return number


def _parse_optional_number(value: Any, name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    return _parse_number(value, name)


def _parse_meter_type(value: Any) -> MeterType:
    try:
        return MeterType(value)
    except ValueError:
        raise ReadingValidationError(f"Unknown meter type: {value!r}")


def reading_from_dict(data: Dict[str, Any], meter_id: Optional[str] = None) -> MeterReading:
    if not isinstance(data, dict):
        raise ReadingValidationError(f"Reading must be an object, got {data!r}")
    meter_id = data.get("meter_id") or meter_id
    if not meter_id or data.get("reading_date") in (None, "") or data.get("reading_value") in (None, ""):
        raise ReadingValidationError(f"Missing field in reading: {data}")
    value = _parse_number(data["reading_value"], "reading_value")
    if value < 0:
        raise ReadingValidationError("reading_value must be >= 0")
    confidence = _parse_optional_number(data.get("confidence"), "confidence")
    if confidence is not None and not 0 <= confidence <= 1:
        raise ReadingValidationError("confidence must be within 0..1")
    try:
        source = ReadingSource(data.get("source") or ReadingSource.MANUAL.value)
    except ValueError:
        raise ReadingValidationError(f"Unknown reading source: {data.get('source')!r}")
    created_at = data.get("created_at")
    if created_at:
        try:
            created_at = datetime.fromisoformat(str(created_at).replace("Z", "+00:00"))
        except ValueError:
            raise ReadingValidationError(f"Invalid created_at: {created_at!r}")
    return MeterReading(
        meter_id=str(meter_id),
        reading_date=parse_date(data["reading_date"]),
        reading_value=value,
        source=source,
        confidence=confidence,
        created_at=created_at or None,
    )


def meter_from_dict(data: Dict[str, Any]) -> Meter:
    if not isinstance(data, dict) or not data.get("id") or not data.get("type"):
        raise ReadingValidationError(f"Meter needs id and type: {data!r}")
    meter_id = str(data["id"])
    interval = data.get("reading_interval_days") or 30
    return Meter(
        id=meter_id,
        type=_parse_meter_type(data["type"]),
        reading_interval_days=int(_parse_number(interval, "reading_interval_days")),
        readings=[reading_from_dict(r, meter_id) for r in data.get("readings") or []],
        meter_number=str(data.get("meter_number") or ""),
        unit_id=data.get("unit_id"),
        building_id=data.get("building_id"),
    )


def unit_from_dict(data: Dict[str, Any]) -> Unit:
    if not isinstance(data, dict) or not data.get("id"):
        raise ReadingValidationError(f"Unit needs an id: {data!r}")
    return Unit(
        id=str(data["id"]),
        area=_parse_optional_number(data.get("area"), "area") or 0.0,
        meters=[meter_from_dict(m) for m in data.get("meters") or []],
        unit_number=str(data.get("unit_number") or ""),
    )


def building_from_dict(data: Dict[str, Any]) -> Building:
    if not isinstance(data, dict) or not data.get("id"):
        raise ReadingValidationError(f"Building needs an id: {data!r}")
    return Building(
        id=str(data["id"]),
        total_area=_parse_optional_number(data.get("total_area"), "total_area") or 0.0,
        units=[unit_from_dict(u) for u in data.get("units") or []],
        meters=[meter_from_dict(m) for m in data.get("meters") or []],
        name=str(data.get("name") or ""),
    )


def parse_csv_string(csv_text: str) -> List[MeterReading]:
    """
    Parse CSV text with header: meter_id,reading_date,reading_value
    Optional columns: source (manual|ocr|api), confidence (0..1), created_at
    Dates are ISO8601, e.g. 2025-01-01 or 2025-01-01T08:00:00Z
    """
    f = StringIO(csv_text.strip())
    reader = csv.DictReader(f)
    readings = []
    for row in reader:
        readings.append(reading_from_dict({k: (v or "").strip() for k, v in row.items() if k}))
    return readings


def group_by_meter(readings: List[MeterReading]) -> Dict[str, List[MeterReading]]:
    grouped: Dict[str, List[MeterReading]] = {}
    for r in readings:
        grouped.setdefault(r.meter_id, []).append(r)
    return grouped


def to_payload(obj: Any) -> Any:
    """Dataclasses, enums and dates -> JSON-ready dicts, lists and strings."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_payload(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {(k.value if isinstance(k, Enum) else k): to_payload(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_payload(v) for v in obj]
    return obj
