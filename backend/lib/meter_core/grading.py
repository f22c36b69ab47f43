from typing import Iterable, List, Optional, Tuple

from .consumption import annual_consumption
from .models import Benchmark, Building, Meter, MeterType
from .rounding import round_int
from .tables import BENCHMARKS

NOT_RATABLE = "–"

# (upper ratio bound, grade); anything above the last bound is G
GRADE_LADDER: Tuple[Tuple[float, str], ...] = (
    (0.5, "A+"),
    (0.7, "A"),
    (0.85, "B"),
    (1.0, "C"),
    (1.15, "D"),
    (1.3, "E"),
    (1.5, "F"),
)

# GEG energy classes by final energy in kWh/m² per year
ENERGY_CLASSES: Tuple[Tuple[float, str], ...] = (
    (30, "A+"),
    (50, "A"),
    (75, "B"),
    (100, "C"),
    (130, "D"),
    (160, "E"),
    (200, "F"),
    (250, "G"),
)


def efficiency_grade(actual: float, benchmark_medium: Optional[float]) -> str:
    """Letter grade for actual consumption relative to the benchmark median."""
    if not benchmark_medium:
        return NOT_RATABLE
    ratio = actual / benchmark_medium
    for bound, grade in GRADE_LADDER:
        if ratio <= bound:
            return grade
    return "G"


def energy_class(kwh_per_sqm: float) -> str:
    for bound, grade in ENERGY_CLASSES:
        if kwh_per_sqm <= bound:
            return grade
    return "H"


def find_benchmark(meter_type: MeterType, building_class: Optional[str] = None,
                   persons_range: Optional[str] = None,
                   benchmarks: Iterable[Benchmark] = BENCHMARKS) -> Optional[Benchmark]:
    """First benchmark row matching the given keys; None when nothing matches."""
    meter_type = MeterType(meter_type)
    for row in benchmarks:
        if row.meter_type != meter_type:
            continue
        if building_class is not None and row.building_class != building_class:
            continue
        if persons_range is not None and row.persons_range != persons_range:
            continue
        return row
    return None


def grade_meter(meter: Meter, building_class: Optional[str] = None,
                persons_range: Optional[str] = None) -> str:
    annual = annual_consumption(meter.readings)
    benchmark = find_benchmark(meter.type, building_class, persons_range)
    if annual is None or benchmark is None:
        return NOT_RATABLE
    return efficiency_grade(annual, benchmark.medium)


def building_ranking(buildings: Iterable[Building]) -> List[dict]:
    """
    Annual consumption per m² for each building, most efficient first.

    Buildings without area or without any computable consumption are left out.
    """
    ranking = []
    for building in buildings:
        area = building.effective_area()
        total = sum(annual_consumption(m.readings) or 0 for m in building.all_meters())
        per_sqm = round_int(total / area) if area > 0 else 0
        if per_sqm <= 0:
            continue
        ranking.append({
            "building_id": building.id,
            "name": building.name,
            "total_consumption": total,
            "area": area,
            "per_sqm": per_sqm,
        })
    ranking.sort(key=lambda row: row["per_sqm"])
    return ranking
