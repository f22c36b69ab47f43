"""
Cost allocation across the units of a building.

Two schemes:

* HeizkostenV: heating (and hot water) cost split between a consumption part
  and an area part, with the consumption ratio taken from one of the
  HeatingSplit presets.
* Mieterstrom / ZEV: building PV self-consumption distributed to units in
  proportion to their electricity demand, capped at each unit's own demand,
  remaining demand bought from the grid.

Zero denominators give zero shares; a unit lacking data never fails the whole
computation. Every unit's cost_share is rounded to the cent on its own, so
the sum may differ from the distributed total by up to one cent per unit.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from .consumption import annual_consumption
from .models import AllocationResult, Building, MeterType, Unit
from .rounding import round_int, round_money
from .tables import HEATING_TYPES, UNIT_ELECTRICITY_TYPES, WATER_TYPES

logger = logging.getLogger(__name__)

MIETERSTROM_PRICE = 0.22
GRID_PRICE = 0.32
FEED_IN_TARIFF = 0.082
PV_CO2_FACTOR = 0.4  # kg CO2 saved per kWh of PV instead of grid

SPLIT_KEYS = {
    "100_consumption": "CONSUMPTION_100",
    "70_30": "STANDARD_70_30",
    "50_50": "EVEN_50_50",
    "100_area": "AREA_100",
}


class HeatingSplit(Enum):
    CONSUMPTION_100 = (1.0, "100% nach Verbrauch")
    STANDARD_70_30 = (0.7, "70% Verbrauch / 30% Fläche (HeizkV Standard)")
    EVEN_50_50 = (0.5, "50% Verbrauch / 50% Fläche")
    AREA_100 = (0.0, "100% nach Fläche")

    @property
    def consumption_ratio(self) -> float:
        return self.value[0]

    @property
    def area_ratio(self) -> float:
        return 1.0 - self.value[0]

    @property
    def label(self) -> str:
        return self.value[1]

    @classmethod
    def from_key(cls, key: str) -> "HeatingSplit":
        """Accepts member names (STANDARD_70_30) and short keys (70_30, 100_area)."""
        if isinstance(key, cls):
            return key
        normalized = str(key).strip()
        if normalized.upper() in cls.__members__:
            return cls[normalized.upper()]
        if normalized in SPLIT_KEYS:
            return cls[SPLIT_KEYS[normalized]]
        raise ValueError(f"Unknown allocation method: {key!r}")


@dataclass
class UnitFigures:
    unit_id: str
    consumption: Optional[float] = 0.0
    area: Optional[float] = 0.0


def _share(part: float, whole: float) -> float:
    return part / whole if whole > 0 else 0.0


def _amount(value: Optional[float]) -> float:
    # missing and negative figures count as zero
    return max(0.0, value or 0.0)


def allocate_heating_costs(units: Sequence[UnitFigures], total_cost: float,
                           split: HeatingSplit = HeatingSplit.STANDARD_70_30,
                           total_area: Optional[float] = None) -> List[AllocationResult]:
    """
    HeizkostenV split of ``total_cost``.

    total_area defaults to the sum of the unit areas; pass the building's
    total area when it includes space outside the listed units.
    """
    consumption_total = sum(_amount(u.consumption) for u in units)
    area_total = total_area if total_area else sum(_amount(u.area) for u in units)
    results = []
    for unit in units:
        consumption_share = _share(_amount(unit.consumption), consumption_total)
        area_share = _share(_amount(unit.area), area_total)
        consumption_cost = consumption_share * total_cost * split.consumption_ratio
        area_cost = area_share * total_cost * split.area_ratio
        results.append(AllocationResult(
            unit_id=unit.unit_id,
            consumption_share=consumption_share,
            cost_share=round_money(consumption_cost + area_cost),
            metadata={
                "consumption": _amount(unit.consumption),
                "area": _amount(unit.area),
                "area_share": area_share,
                "consumption_cost": round_money(consumption_cost),
                "area_cost": round_money(area_cost),
            },
        ))
    return results


def allocate_by_consumption(units: Sequence[UnitFigures], total_cost: float) -> List[AllocationResult]:
    """Pure consumption split, used for water costs."""
    return allocate_heating_costs(units, total_cost, HeatingSplit.CONSUMPTION_100)


def allocate_pv_self_consumption(units: Sequence[UnitFigures], pv_available: float,
                                 pv_price: float = MIETERSTROM_PRICE,
                                 grid_price: float = GRID_PRICE,
                                 co2_factor: float = PV_CO2_FACTOR) -> List[AllocationResult]:
    """
    Mieterstrom split. consumption_share is the unit's PV energy, cost_share
    its total electricity cost (PV part at pv_price, rest at grid_price).

    Each unit's PV share is rounded to whole kWh and capped at its demand, so
    the PV energy handed out can stay below pv_available. It never exceeds
    it: once rounding up has used the PV energy, later units get what is left.
    """
    consumption_total = sum(_amount(u.consumption) for u in units)
    remaining = max(0.0, pv_available)
    results = []
    for unit in units:
        demand = _amount(unit.consumption)
        if consumption_total > 0 and pv_available > 0:
            pv_share = min(demand, round_int(pv_available * demand / consumption_total), remaining)
            remaining -= pv_share
        else:
            pv_share = 0
        grid_share = demand - pv_share
        pv_cost = round_money(pv_share * pv_price)
        grid_cost = round_money(grid_share * grid_price)
        results.append(AllocationResult(
            unit_id=unit.unit_id,
            consumption_share=pv_share,
            cost_share=round_money(pv_cost + grid_cost),
            metadata={
                "consumption": demand,
                "pv_share": pv_share,
                "grid_share": grid_share,
                "pv_cost": pv_cost,
                "grid_cost": grid_cost,
                "savings": round_money(pv_share * (grid_price - pv_price)),
                "co2_saved": round_int(pv_share * co2_factor),
            },
        ))
    return results


def _unit_consumption(unit: Unit, meter_types: Iterable[MeterType]) -> float:
    # clamped at zero: a meter reset never yields a negative share
    wanted = set(meter_types)
    total = sum(annual_consumption(m.readings) or 0 for m in unit.meters if m.type in wanted)
    return float(max(0, total))


def _unit_figures(building: Building, meter_types: Iterable[MeterType]) -> List[UnitFigures]:
    meter_types = tuple(meter_types)
    return [
        UnitFigures(unit_id=u.id, consumption=_unit_consumption(u, meter_types), area=u.area or 0.0)
        for u in building.units
    ]


def building_heating_figures(building: Building) -> List[UnitFigures]:
    return _unit_figures(building, HEATING_TYPES)


def building_water_figures(building: Building) -> List[UnitFigures]:
    return _unit_figures(building, WATER_TYPES)


def building_electricity_figures(building: Building) -> List[UnitFigures]:
    return _unit_figures(building, UNIT_ELECTRICITY_TYPES)


def utility_bill(building: Building, heating_total: float, water_total: float,
                 split: HeatingSplit = HeatingSplit.STANDARD_70_30) -> List[Dict[str, object]]:
    """
    Per-unit utility bill: heating by the chosen split over the building's
    effective area, water purely by consumption.
    """
    heating = allocate_heating_costs(building_heating_figures(building), heating_total, split,
                                     total_area=building.effective_area())
    water = allocate_by_consumption(building_water_figures(building), water_total)
    rows = []
    for unit, heat, wat in zip(building.units, heating, water):
        rows.append({
            "unit_id": unit.id,
            "unit_number": unit.unit_number,
            "area": unit.area or 0.0,
            "heating_consumption": heat.metadata["consumption"],
            "heating_cost": heat.cost_share,
            "water_consumption": wat.metadata["consumption"],
            "water_cost": wat.cost_share,
            "total_cost": round_money(heat.cost_share + wat.cost_share),
        })
    return rows


def pv_summary(building: Building) -> Dict[str, object]:
    """Annual PV production, feed-in and self use (production minus feed-in)."""
    production = 0
    feed_in = 0
    has_pv = False
    for meter in building.all_meters():
        if meter.type == MeterType.PV_PRODUCTION:
            has_pv = True
            production += annual_consumption(meter.readings) or 0
        elif meter.type == MeterType.PV_FEED_IN:
            feed_in += annual_consumption(meter.readings) or 0
    return {
        "production": production,
        "feed_in": feed_in,
        "self_use": production - feed_in,
        "has_pv": has_pv,
    }


def mieterstrom_settlement(building: Building, pv_price: float = MIETERSTROM_PRICE,
                           grid_price: float = GRID_PRICE,
                           feed_in_tariff: float = FEED_IN_TARIFF) -> Dict[str, object]:
    """Mieterstrom / ZEV settlement for one building with totals."""
    pv = pv_summary(building)
    if not pv["has_pv"]:
        logger.info("building %s has no PV production meter, all demand is grid", building.id)
    figures = building_electricity_figures(building)
    units = allocate_pv_self_consumption(figures, pv["self_use"], pv_price, grid_price)
    total_consumption = sum(f.consumption for f in figures)
    return {
        "pv": pv,
        "units": units,
        "total_consumption": total_consumption,
        "total_pv_revenue": round_money(sum(u.metadata["pv_cost"] for u in units)),
        "total_grid_cost": round_money(sum(u.metadata["grid_cost"] for u in units)),
        "total_savings": round_money(sum(u.metadata["savings"] for u in units)),
        "total_co2_saved": sum(u.metadata["co2_saved"] for u in units),
        "feed_in_revenue": round_money(pv["feed_in"] * feed_in_tariff),
        "self_use_ratio": round_int(pv["self_use"] / total_consumption * 100) if total_consumption > 0 else 0,
    }
