"""
Static lookup tables keyed by meter type.

Every table is a read-only mapping. Lookups go through the helper functions
below, which spell out the fallback for types a table does not cover.
"""
from types import MappingProxyType
from typing import Optional, Tuple

from .models import Benchmark, MeterType

M = MeterType

LABELS = MappingProxyType({
    M.ELECTRICITY: "Strom (Bezug)",
    M.GAS: "Gas",
    M.WATER_COLD: "Kaltwasser",
    M.WATER_HOT: "Warmwasser",
    M.HEATING: "Heizung",
    M.PV_FEED_IN: "PV-Einspeisung",
    M.PV_SELF_CONSUMPTION: "PV-Eigenverbrauch",
    M.PV_PRODUCTION: "PV-Gesamtproduktion",
    M.ELECTRICITY_HT: "Strom HT (Hochtarif)",
    M.ELECTRICITY_NT: "Strom NT (Niedertarif)",
    M.ELECTRICITY_COMMON: "Allgemeinstrom",
    M.HEAT_PUMP: "Wärmepumpe",
    M.EV_CHARGING: "E-Auto-Ladung",
    M.DISTRICT_HEATING: "Fernwärme",
    M.COOLING: "Kühlung",
    M.OIL: "Heizöl",
    M.PELLETS: "Pellets",
    M.LPG: "Flüssiggas",
})

UNITS = MappingProxyType({
    M.ELECTRICITY: "kWh",
    M.GAS: "m³",
    M.WATER_COLD: "m³",
    M.WATER_HOT: "m³",
    M.HEATING: "kWh",
    M.PV_FEED_IN: "kWh",
    M.PV_SELF_CONSUMPTION: "kWh",
    M.PV_PRODUCTION: "kWh",
    M.ELECTRICITY_HT: "kWh",
    M.ELECTRICITY_NT: "kWh",
    M.ELECTRICITY_COMMON: "kWh",
    M.HEAT_PUMP: "kWh",
    M.EV_CHARGING: "kWh",
    M.DISTRICT_HEATING: "kWh",
    M.COOLING: "kWh",
    M.OIL: "Liter",
    M.PELLETS: "kg",
    M.LPG: "kg",
})

GROUPS = MappingProxyType({
    "strom": (M.ELECTRICITY, M.ELECTRICITY_HT, M.ELECTRICITY_NT,
              M.ELECTRICITY_COMMON, M.HEAT_PUMP, M.EV_CHARGING),
    "solar": (M.PV_PRODUCTION, M.PV_FEED_IN, M.PV_SELF_CONSUMPTION),
    "gas_brennstoff": (M.GAS, M.OIL, M.PELLETS, M.LPG),
    "wasser": (M.WATER_COLD, M.WATER_HOT),
    "waerme": (M.HEATING, M.DISTRICT_HEATING, M.COOLING),
})

# EUR per unit; cooling, pv_production and pv_self_consumption carry no price
DEFAULT_PRICES = MappingProxyType({
    M.ELECTRICITY: 0.32,
    M.ELECTRICITY_HT: 0.35,
    M.ELECTRICITY_NT: 0.25,
    M.ELECTRICITY_COMMON: 0.32,
    M.GAS: 0.12,
    M.WATER_COLD: 4.50,
    M.WATER_HOT: 8.00,
    M.HEATING: 0.10,
    M.DISTRICT_HEATING: 0.10,
    M.HEAT_PUMP: 0.28,
    M.EV_CHARGING: 0.32,
    M.OIL: 1.10,
    M.PELLETS: 0.35,
    M.LPG: 0.80,
    M.PV_FEED_IN: 0.082,
})

# GEG primary energy factors
PRIMARY_ENERGY_FACTORS = MappingProxyType({
    M.GAS: 1.1,
    M.OIL: 1.1,
    M.DISTRICT_HEATING: 0.7,
    M.ELECTRICITY: 1.8,
    M.HEAT_PUMP: 1.8,
    M.PELLETS: 0.2,
    M.LPG: 1.1,
    M.HEATING: 1.0,
})

# kg CO2 per kWh
CO2_FACTORS = MappingProxyType({
    M.GAS: 0.201,
    M.OIL: 0.266,
    M.DISTRICT_HEATING: 0.12,
    M.ELECTRICITY: 0.42,
    M.HEAT_PUMP: 0.42,
    M.PELLETS: 0.036,
    M.LPG: 0.227,
    M.HEATING: 0.201,
})

# kWh per metered unit for fuels not metered in kWh
KWH_CONVERSION = MappingProxyType({
    M.GAS: 10.3,
    M.OIL: 10.0,
    M.PELLETS: 4.9,
    M.LPG: 12.8,
})

DEFAULT_PRIMARY_ENERGY_FACTOR = 1.0
DEFAULT_CO2_FACTOR = 0.2

HEATING_TYPES = (M.HEATING, M.GAS, M.DISTRICT_HEATING)
WATER_TYPES = (M.WATER_COLD, M.WATER_HOT)
UNIT_ELECTRICITY_TYPES = (M.ELECTRICITY, M.ELECTRICITY_HT, M.ELECTRICITY_NT)

# BDEW / co2online reference values 2024
BENCHMARKS: Tuple[Benchmark, ...] = (
    Benchmark(M.ELECTRICITY, "mfh_small", "1", 1300, 1800, 2500, "kWh", "BDEW 2024"),
    Benchmark(M.ELECTRICITY, "mfh_small", "2", 2000, 2800, 3800, "kWh", "BDEW 2024"),
    Benchmark(M.ELECTRICITY, "mfh_small", "3-4", 2800, 3700, 5000, "kWh", "BDEW 2024"),
    Benchmark(M.ELECTRICITY, "efh", "1", 1500, 2400, 3500, "kWh", "BDEW 2024"),
    Benchmark(M.ELECTRICITY, "efh", "2", 2400, 3400, 4900, "kWh", "BDEW 2024"),
    Benchmark(M.ELECTRICITY, "efh", "3-4", 3200, 4500, 6200, "kWh", "BDEW 2024"),
    Benchmark(M.GAS, "efh", "1-2", 10000, 16000, 24000, "kWh", "co2online 2024"),
    Benchmark(M.GAS, "mfh_small", "1-2", 6000, 10000, 16000, "kWh", "co2online 2024"),
    Benchmark(M.WATER_COLD, "mfh_small", "1", 30, 46, 65, "m³", "BDEW 2024"),
    Benchmark(M.WATER_COLD, "mfh_small", "2", 55, 84, 120, "m³", "BDEW 2024"),
    Benchmark(M.HEATING, "efh", "1-4", 8000, 14000, 22000, "kWh", "co2online 2024"),
    Benchmark(M.HEATING, "mfh_small", "1-4", 5000, 9000, 15000, "kWh", "co2online 2024"),
)


def default_price(meter_type: MeterType) -> float:
    """Default price per unit, 0.0 for types without a tariff."""
    return DEFAULT_PRICES.get(MeterType(meter_type), 0.0)


def primary_energy_factor(meter_type: MeterType) -> float:
    return PRIMARY_ENERGY_FACTORS.get(MeterType(meter_type), DEFAULT_PRIMARY_ENERGY_FACTOR)


def co2_factor(meter_type: MeterType) -> float:
    return CO2_FACTORS.get(MeterType(meter_type), DEFAULT_CO2_FACTOR)


def to_kwh(meter_type: MeterType, value: float) -> float:
    """Convert a metered quantity to kWh; kWh-metered types pass through."""
    return value * KWH_CONVERSION.get(MeterType(meter_type), 1.0)


def meter_label(meter_type: MeterType) -> str:
    """Display name, falling back to the raw type value."""
    meter_type = MeterType(meter_type)
    return LABELS.get(meter_type, meter_type.value)


def unit_label(meter_type: MeterType) -> str:
    return UNITS[MeterType(meter_type)]


def group_of(meter_type: MeterType) -> Optional[str]:
    for name, types in GROUPS.items():
        if MeterType(meter_type) in types:
            return name
    return None
