from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional

from .consumption import months_back
from .models import Meter, MeterReading, MonthlyTotal
from .normalizer import normalize_readings
from .rounding import round_to


def _grid() -> List[List[float]]:
    return [[0.0] * 7 for _ in range(12)]


@dataclass
class HeatmapGrid:
    """
    12 x 7 grid of daily consumption rates keyed by (month - 1, weekday),
    Monday = 0. Sums and counts are kept apart so grids can be merged before
    averaging.
    """
    sums: List[List[float]] = field(default_factory=_grid)
    counts: List[List[int]] = field(default_factory=lambda: [[0] * 7 for _ in range(12)])

    def add(self, month_index: int, weekday: int, rate: float) -> None:
        self.sums[month_index][weekday] += rate
        self.counts[month_index][weekday] += 1

    def merge(self, other: "HeatmapGrid") -> None:
        for m in range(12):
            for d in range(7):
                self.sums[m][d] += other.sums[m][d]
                self.counts[m][d] += other.counts[m][d]

    def averages(self) -> List[List[float]]:
        return [
            [round_to(s / c, 1) if c else 0.0 for s, c in zip(sum_row, count_row)]
            for sum_row, count_row in zip(self.sums, self.counts)
        ]

    def monthly_totals(self) -> List[float]:
        """Sum of the average daily rates per month, for bar displays."""
        return [round_to(sum(row), 0) for row in self.averages()]

    def max_value(self) -> float:
        return max(max(row) for row in self.averages())


class EnergyAnalyzer:
    def __init__(self, readings: Iterable[MeterReading]):
        # Ensure readings are validated, sorted and one per date
        self.readings = normalize_readings(readings)

    def monthly_consumption(self, months: int = 12, today: Optional[date] = None) -> List[MonthlyTotal]:
        """
        Consumption for each of the last ``months`` calendar months, oldest
        first. A month needs two readings inside it; otherwise it reports 0.
        Negative deltas are clamped to 0 for charting.
        """
        today = today or date.today()
        result = []
        for back in range(months - 1, -1, -1):
            anchor = months_back(today, back)
            month_start = date(anchor.year, anchor.month, 1)
            month_end = date(anchor.year, anchor.month, monthrange(anchor.year, anchor.month)[1])
            in_month = [r for r in self.readings if month_start <= r.reading_date <= month_end]
            value = 0.0
            if len(in_month) >= 2:
                value = max(0.0, in_month[-1].reading_value - in_month[0].reading_value)
            result.append(MonthlyTotal(month_start=month_start, value=value))
        return result

    def weekday_month_heatmap(self) -> HeatmapGrid:
        """
        Approximate daily consumption spread over a month x weekday grid.

        Each pair of consecutive readings is assumed to deplete linearly; the
        resulting daily rate lands in the cell of the later reading's date.
        This is an interpolation, not metered daily data.
        """
        grid = HeatmapGrid()
        for prev, curr in zip(self.readings, self.readings[1:]):
            days = max(1, (curr.reading_date - prev.reading_date).days)
            rate = max(0.0, curr.reading_value - prev.reading_value) / days
            grid.add(curr.reading_date.month - 1, curr.reading_date.weekday(), rate)
        return grid


def monthly_totals_for_meters(meters: Iterable[Meter], months: int = 12,
                              today: Optional[date] = None) -> List[MonthlyTotal]:
    """Monthly consumption summed across several meters (of one type, usually)."""
    today = today or date.today()
    totals: Optional[List[MonthlyTotal]] = None
    for meter in meters:
        series = EnergyAnalyzer(meter.readings).monthly_consumption(months, today)
        if totals is None:
            totals = series
            continue
        for total, item in zip(totals, series):
            total.value += item.value
    if totals is None:
        return EnergyAnalyzer([]).monthly_consumption(months, today)
    return totals


def heatmap_for_meters(meters: Iterable[Meter]) -> HeatmapGrid:
    grid = HeatmapGrid()
    for meter in meters:
        grid.merge(EnergyAnalyzer(meter.readings).weekday_month_heatmap())
    return grid
