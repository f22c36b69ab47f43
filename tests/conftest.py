# tests/conftest.py
from backend.lib.meter_core.models import Building, Meter, MeterReading, MeterType, Unit
from datetime import date
import pytest

def _yearly_meter(meter_id, meter_type, annual):
    # two readings exactly 365 days apart, so the delta is the annual figure
    return Meter(meter_id, meter_type, readings=[
        MeterReading(meter_id, date(2025, 1, 1), 0),
        MeterReading(meter_id, date(2026, 1, 1), annual),
    ])

@pytest.fixture
def yearly_meter():
    return _yearly_meter

@pytest.fixture
def rental_building():
    units = [
        Unit("u1", 50, meters=[
            _yearly_meter("h1", MeterType.HEATING, 3000),
            _yearly_meter("w1", MeterType.WATER_COLD, 40),
            _yearly_meter("e1", MeterType.ELECTRICITY, 3000),
        ], unit_number="1"),
        Unit("u2", 50, meters=[
            _yearly_meter("h2", MeterType.HEATING, 7000),
            _yearly_meter("w2", MeterType.WATER_HOT, 60),
            _yearly_meter("e2", MeterType.ELECTRICITY, 1000),
        ], unit_number="2"),
    ]
    meters = [
        _yearly_meter("pv", MeterType.PV_PRODUCTION, 10000),
        _yearly_meter("feed", MeterType.PV_FEED_IN, 7000),
    ]
    return Building("b1", 0, units=units, meters=meters, name="Lindenstr. 4")
