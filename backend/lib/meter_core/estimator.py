from typing import Dict, Iterable, Mapping, Optional

from .consumption import annual_consumption
from .models import Meter, MeterType
from .rounding import round_money
from .tables import default_price


def calculate_cost(consumption: float, meter_type: MeterType, price_per_unit: Optional[float] = None) -> float:
    """
    consumption * price, rounded half-up to 2 decimals.

    An explicit price wins over the default price table; types without a
    default price cost 0.0.
    """
    price = price_per_unit if price_per_unit is not None else default_price(meter_type)
    if not consumption or not price:
        return 0.0
    return round_money(consumption * price)


class BillingEstimator:
    def __init__(self, price_overrides: Optional[Mapping[MeterType, float]] = None):
        """
        price_overrides: per meter type price in currency units (e.g., EUR/kWh),
        taking precedence over the default price table
        """
        self.prices: Dict[MeterType, float] = {
            MeterType(k): float(v) for k, v in (price_overrides or {}).items()
        }

    def price_for(self, meter_type: MeterType) -> float:
        meter_type = MeterType(meter_type)
        if meter_type in self.prices:
            return self.prices[meter_type]
        return default_price(meter_type)

    def estimate_cost(self, consumption: float, meter_type: MeterType) -> float:
        return calculate_cost(consumption, meter_type, self.price_for(meter_type))

    def estimate_meter(self, meter: Meter) -> Optional[Dict[str, float]]:
        """
        Annual consumption and cost for one meter, None without enough readings.
        """
        annual = annual_consumption(meter.readings)
        if annual is None:
            return None
        return {
            "annual_consumption": annual,
            "price_per_unit": self.price_for(meter.type),
            "cost": self.estimate_cost(annual, meter.type),
        }

    def estimate_by_type(self, meters: Iterable[Meter]) -> Dict[MeterType, Dict[str, float]]:
        """
        Consumption and cost summed per meter type. Meters without a
        computable annual consumption are skipped.
        """
        totals: Dict[MeterType, Dict[str, float]] = {}
        for meter in meters:
            estimate = self.estimate_meter(meter)
            if estimate is None:
                continue
            entry = totals.setdefault(meter.type, {"consumption": 0.0, "cost": 0.0, "count": 0})
            entry["consumption"] += estimate["annual_consumption"]
            entry["cost"] = round_money(entry["cost"] + estimate["cost"])
            entry["count"] += 1
        return totals

    def total_cost(self, meters: Iterable[Meter]) -> float:
        return round_money(sum(e["cost"] for e in self.estimate_by_type(meters).values()))
