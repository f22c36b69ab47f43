# tests/test_allocation.py
from backend.lib.meter_core.allocation import (
    HeatingSplit,
    UnitFigures,
    allocate_by_consumption,
    allocate_heating_costs,
    allocate_pv_self_consumption,
    mieterstrom_settlement,
    pv_summary,
    utility_bill,
)
from backend.lib.meter_core.models import Building
import pytest

def two_units():
    return [UnitFigures("u1", consumption=30, area=50), UnitFigures("u2", consumption=70, area=50)]

def test_heating_70_30():
    results = allocate_heating_costs(two_units(), 1000, HeatingSplit.STANDARD_70_30)
    assert [r.cost_share for r in results] == [360.0, 640.0]
    assert results[0].consumption_share == pytest.approx(0.3)
    assert results[0].metadata["consumption_cost"] == 210.0
    assert results[0].metadata["area_cost"] == 150.0

def test_heating_presets():
    assert [r.cost_share for r in allocate_heating_costs(two_units(), 1000, HeatingSplit.CONSUMPTION_100)] == [300.0, 700.0]
    assert [r.cost_share for r in allocate_heating_costs(two_units(), 1000, HeatingSplit.EVEN_50_50)] == [400.0, 600.0]
    assert [r.cost_share for r in allocate_heating_costs(two_units(), 1000, HeatingSplit.AREA_100)] == [500.0, 500.0]

def test_split_keys():
    assert HeatingSplit.from_key("70_30") is HeatingSplit.STANDARD_70_30
    assert HeatingSplit.from_key("100_area") is HeatingSplit.AREA_100
    assert HeatingSplit.from_key("even_50_50") is HeatingSplit.EVEN_50_50
    assert HeatingSplit.AREA_100.consumption_ratio == 0.0
    with pytest.raises(ValueError):
        HeatingSplit.from_key("60_40")

def test_building_area_includes_common_space():
    results = allocate_heating_costs(two_units(), 1000, HeatingSplit.AREA_100, total_area=200)
    assert [r.cost_share for r in results] == [250.0, 250.0]

def test_zero_consumption_gives_zero_consumption_part():
    units = [UnitFigures("u1", consumption=0, area=50), UnitFigures("u2", consumption=None, area=-5)]
    results = allocate_heating_costs(units, 1000, HeatingSplit.STANDARD_70_30)
    assert [r.cost_share for r in results] == [300.0, 0.0]
    assert all(r.consumption_share == 0 for r in results)

def test_consumption_split_rounds_per_unit():
    units = [UnitFigures(u, consumption=1) for u in ("a", "b", "c")]
    results = allocate_by_consumption(units, 100)
    assert [r.cost_share for r in results] == [33.33, 33.33, 33.33]
    assert abs(sum(r.cost_share for r in results) - 100) <= 0.03

def test_pv_split_proportional():
    units = [UnitFigures("u1", consumption=3000), UnitFigures("u2", consumption=1000)]
    results = allocate_pv_self_consumption(units, 3000)
    assert [r.consumption_share for r in results] == [2250, 750]
    assert [r.metadata["grid_share"] for r in results] == [750, 250]
    assert results[0].cost_share == 735.0  # 2250 * 0.22 + 750 * 0.32
    assert results[0].metadata["co2_saved"] == 900

def test_pv_split_capped_at_demand():
    units = [UnitFigures("u1", consumption=3000), UnitFigures("u2", consumption=1000)]
    results = allocate_pv_self_consumption(units, 10000)
    assert [r.consumption_share for r in results] == [3000, 1000]
    assert all(r.metadata["grid_share"] == 0 for r in results)

def test_pv_split_never_exceeds_available():
    units = [UnitFigures(u, consumption=1) for u in ("a", "b", "c")]
    results = allocate_pv_self_consumption(units, 2)
    assert sum(r.consumption_share for r in results) <= 2

def test_pv_split_without_pv():
    results = allocate_pv_self_consumption([UnitFigures("u1", consumption=100)], 0)
    assert results[0].consumption_share == 0
    assert results[0].cost_share == 32.0
    assert results[0].metadata["savings"] == 0.0

def test_utility_bill(rental_building):
    rows = utility_bill(rental_building, 1000, 300)
    assert [row["heating_cost"] for row in rows] == [360.0, 640.0]
    assert [row["water_cost"] for row in rows] == [120.0, 180.0]
    assert [row["total_cost"] for row in rows] == [480.0, 820.0]
    assert rows[0]["unit_number"] == "1"

def test_pv_summary(rental_building):
    assert pv_summary(rental_building) == {
        "production": 10000, "feed_in": 7000, "self_use": 3000, "has_pv": True,
    }
    assert pv_summary(Building("b2"))["has_pv"] is False

def test_mieterstrom_settlement(rental_building):
    settlement = mieterstrom_settlement(rental_building)
    assert [u.consumption_share for u in settlement["units"]] == [2250, 750]
    assert settlement["total_consumption"] == 4000
    assert settlement["total_pv_revenue"] == 660.0
    assert settlement["total_grid_cost"] == 320.0
    assert settlement["total_savings"] == 300.0
    assert settlement["total_co2_saved"] == 1200
    assert settlement["feed_in_revenue"] == 574.0
    assert settlement["self_use_ratio"] == 75
