from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional


class MeterType(str, Enum):
    ELECTRICITY = "electricity"
    GAS = "gas"
    WATER_COLD = "water_cold"
    WATER_HOT = "water_hot"
    HEATING = "heating"
    DISTRICT_HEATING = "district_heating"
    COOLING = "cooling"
    PV_PRODUCTION = "pv_production"
    PV_FEED_IN = "pv_feed_in"
    PV_SELF_CONSUMPTION = "pv_self_consumption"
    ELECTRICITY_HT = "electricity_ht"
    ELECTRICITY_NT = "electricity_nt"
    ELECTRICITY_COMMON = "electricity_common"
    HEAT_PUMP = "heat_pump"
    EV_CHARGING = "ev_charging"
    OIL = "oil"
    PELLETS = "pellets"
    LPG = "lpg"


class ReadingSource(str, Enum):
    MANUAL = "manual"
    OCR = "ocr"
    API = "api"


class ReadingStatus(str, Enum):
    CURRENT = "current"
    DUE = "due"
    OVERDUE = "overdue"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AlertType(str, Enum):
    CONSUMPTION_SPIKE = "consumption_spike"
    BENCHMARK_EXCEEDED = "benchmark_exceeded"
    READING_OVERDUE = "reading_overdue"
    INTERVAL_SPIKE = "interval_spike"
    INTERVAL_DROP = "interval_drop"
    STALE_METER = "stale_meter"


@dataclass
class MeterReading:
    meter_id: str
    reading_date: date
    reading_value: float
    source: ReadingSource = ReadingSource.MANUAL
    confidence: Optional[float] = None
    created_at: Optional[datetime] = None


@dataclass
class Meter:
    id: str
    type: MeterType
    reading_interval_days: int = 30
    readings: List[MeterReading] = field(default_factory=list)
    meter_number: str = ""
    unit_id: Optional[str] = None
    building_id: Optional[str] = None


@dataclass
class Unit:
    id: str
    area: float = 0.0
    meters: List[Meter] = field(default_factory=list)
    unit_number: str = ""


@dataclass
class Building:
    id: str
    total_area: float = 0.0
    units: List[Unit] = field(default_factory=list)
    meters: List[Meter] = field(default_factory=list)
    name: str = ""

    def all_meters(self) -> List[Meter]:
        """Building-level shared meters followed by every unit's meters."""
        result = list(self.meters)
        for unit in self.units:
            result.extend(unit.meters)
        return result

    def effective_area(self) -> float:
        if self.total_area:
            return float(self.total_area)
        return float(sum(u.area or 0.0 for u in self.units))


@dataclass(frozen=True)
class Benchmark:
    meter_type: MeterType
    building_class: str
    persons_range: str
    low: float
    medium: float
    high: float
    unit: str
    source: str = ""


@dataclass
class ConsumptionWindow:
    first_reading: MeterReading
    last_reading: MeterReading
    day_span: int
    raw_delta: float
    annualized_value: int


@dataclass
class AllocationResult:
    unit_id: str
    consumption_share: float
    cost_share: float
    metadata: Dict[str, float] = field(default_factory=dict)


@dataclass
class Alert:
    id: str
    type: AlertType
    severity: Severity
    meter_id: Optional[str] = None
    meter_type: Optional[MeterType] = None
    value: Optional[float] = None
    reference: Optional[float] = None
    change_pct: Optional[float] = None
    dismissed: bool = False


@dataclass
class ForecastResult:
    slope: float
    intercept: float
    trend: str
    projection: List[float]
    annual_forecast: float


@dataclass
class MonthlyTotal:
    month_start: date
    value: float

    @property
    def label(self) -> str:
        return self.month_start.strftime("%Y-%m")


@dataclass
class EnergyPassport:
    building_id: str
    area: float
    final_energy: int
    primary_energy: int
    co2_emissions: float
    energy_class: str
    heating_energy: int
    electricity_energy: int
    meter_count: int
