# tests/test_io.py
from backend.lib.meter_core.io import (
    building_from_dict,
    group_by_meter,
    meter_from_dict,
    parse_csv_string,
    parse_date,
    to_payload,
)
from backend.lib.meter_core.errors import ReadingValidationError
from backend.lib.meter_core.models import MeterType, ReadingSource
from datetime import date
import pathlib
import pytest

def test_parse_sample_csv():
    p = pathlib.Path(__file__).parent / "sample.csv"
    text = p.read_text()
    readings = parse_csv_string(text)
    assert len(readings) == 4
    assert readings[0].meter_id == "meter-001"
    assert readings[0].reading_date == date(2025, 1, 1)
    assert readings[0].reading_value == 1000.0
    assert readings[1].source == ReadingSource.OCR
    assert readings[1].confidence == 0.93
    assert readings[0].confidence is None

def test_group_by_meter():
    p = pathlib.Path(__file__).parent / "sample.csv"
    grouped = group_by_meter(parse_csv_string(p.read_text()))
    assert sorted(grouped) == ["meter-001", "meter-002"]
    assert len(grouped["meter-001"]) == 3

def test_negative_value_rejected():
    text = "meter_id,reading_date,reading_value\nm1,2025-01-01,-5\n"
    with pytest.raises(ReadingValidationError):
        parse_csv_string(text)

def test_malformed_date_rejected():
    text = "meter_id,reading_date,reading_value\nm1,01.02.2025,5\n"
    with pytest.raises(ReadingValidationError):
        parse_csv_string(text)

def test_missing_field_rejected():
    text = "meter_id,reading_date,reading_value\nm1,,5\n"
    with pytest.raises(ValueError):
        parse_csv_string(text)

def test_parse_date_accepts_timestamps():
    assert parse_date("2025-11-01T00:00:00Z") == date(2025, 11, 1)
    assert parse_date("2025-11-01") == date(2025, 11, 1)

def test_meter_from_dict_uses_meter_id_for_readings():
    meter = meter_from_dict({
        "id": "m1",
        "type": "gas",
        "readings": [{"reading_date": "2025-01-01", "reading_value": 3}],
    })
    assert meter.type == MeterType.GAS
    assert meter.reading_interval_days == 30
    assert meter.readings[0].meter_id == "m1"

def test_unknown_meter_type_rejected():
    with pytest.raises(ReadingValidationError):
        meter_from_dict({"id": "m1", "type": "steam"})

def test_building_from_dict_collects_all_meters():
    building = building_from_dict({
        "id": "b1",
        "meters": [{"id": "pv", "type": "pv_production"}],
        "units": [{"id": "u1", "area": 55, "meters": [{"id": "e1", "type": "electricity"}]}],
    })
    assert [m.id for m in building.all_meters()] == ["pv", "e1"]
    assert building.effective_area() == 55.0

def test_to_payload_converts_enums_and_dates():
    meter = meter_from_dict({
        "id": "m1",
        "type": "electricity",
        "readings": [{"reading_date": "2025-01-01", "reading_value": 3}],
    })
    payload = to_payload(meter)
    assert payload["type"] == "electricity"
    assert payload["readings"][0]["reading_date"] == "2025-01-01"
    assert payload["readings"][0]["source"] == "manual"

def test_non_finite_values_rejected():
    for value in ("nan", "inf", "-Infinity"):
        text = f"meter_id,reading_date,reading_value\nm1,2025-01-01,{value}\n"
        with pytest.raises(ReadingValidationError):
            parse_csv_string(text)
