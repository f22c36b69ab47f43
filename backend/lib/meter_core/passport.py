"""
Energy performance figures for a building (GEG Energieausweis style).

Heating fuels are converted to kWh, hot water is taken from hot-water meters
at 58 kWh per m³ or, without such meters, as a flat 20 kWh per m² of area.
"""
from typing import Optional

from .consumption import annual_consumption
from .grading import energy_class
from .models import Building, EnergyPassport, MeterType
from .rounding import round_int, round_to
from .tables import co2_factor, primary_energy_factor, to_kwh

PASSPORT_HEATING_TYPES = (
    MeterType.HEATING, MeterType.GAS, MeterType.OIL, MeterType.DISTRICT_HEATING,
    MeterType.HEAT_PUMP, MeterType.PELLETS, MeterType.LPG,
)
PASSPORT_ELECTRICITY_TYPES = (
    MeterType.ELECTRICITY, MeterType.ELECTRICITY_HT, MeterType.ELECTRICITY_NT,
    MeterType.ELECTRICITY_COMMON,
)
HOT_WATER_KWH_PER_M3 = 58
HOT_WATER_KWH_PER_SQM = 20
HOT_WATER_PRIMARY_FACTOR = 1.1
HOT_WATER_CO2_FACTOR = 0.201


def energy_performance(building: Building) -> Optional[EnergyPassport]:
    area = building.effective_area()
    if area <= 0:
        return None

    meters = building.all_meters()
    heating_energy = 0.0
    electricity_energy = 0.0
    primary = 0.0
    co2 = 0.0

    for meter in meters:
        if meter.type in PASSPORT_HEATING_TYPES:
            kwh = to_kwh(meter.type, annual_consumption(meter.readings) or 0)
            heating_energy += kwh
            primary += kwh * primary_energy_factor(meter.type)
            co2 += kwh * co2_factor(meter.type)
        elif meter.type in PASSPORT_ELECTRICITY_TYPES:
            kwh = annual_consumption(meter.readings) or 0
            electricity_energy += kwh
            primary += kwh * primary_energy_factor(MeterType.ELECTRICITY)
            co2 += kwh * co2_factor(MeterType.ELECTRICITY)

    hot_water_meters = [m for m in meters if m.type == MeterType.WATER_HOT]
    if hot_water_meters:
        hot_water = sum(annual_consumption(m.readings) or 0 for m in hot_water_meters) * HOT_WATER_KWH_PER_M3
    else:
        hot_water = area * HOT_WATER_KWH_PER_SQM
    primary += hot_water * HOT_WATER_PRIMARY_FACTOR
    co2 += hot_water * HOT_WATER_CO2_FACTOR

    total = heating_energy + electricity_energy + hot_water
    final_energy = round_int(total / area)
    return EnergyPassport(
        building_id=building.id,
        area=area,
        final_energy=final_energy,
        primary_energy=round_int(primary / area),
        co2_emissions=round_to(co2 / area, 1),
        energy_class=energy_class(final_energy),
        heating_energy=round_int(heating_energy),
        electricity_energy=round_int(electricity_energy),
        meter_count=len(meters),
    )
