# backend/run_local.py
import logging
import sys
from pathlib import Path

from backend.lib.meter_core.estimator import BillingEstimator
from backend.lib.meter_core.io import group_by_meter, parse_csv_string
from backend.lib.meter_core.consumption import consumption_window
from backend.lib.meter_core.models import MeterType
from backend.lib.meter_core.tables import unit_label


def main(csv_path, meter_type="electricity", price=None):
    text = Path(csv_path).read_text()
    readings = parse_csv_string(text)
    meter_type = MeterType(meter_type)
    estimator = BillingEstimator({meter_type: float(price)} if price else None)
    print(f"Parsed {len(readings)} readings:")
    for meter_id, series in sorted(group_by_meter(readings).items()):
        window = consumption_window(series)
        if window is None:
            print(f" - {meter_id}: not enough data ({len(series)} readings)")
            continue
        cost = estimator.estimate_cost(window.annualized_value, meter_type)
        print(f" - {meter_id} ({meter_type.value}) {window.day_span} days, "
              f"{window.annualized_value} {unit_label(meter_type)} per year, {cost:.2f} EUR")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    csv = sys.argv[1] if len(sys.argv) > 1 else "tests/sample.csv"
    meter_type = sys.argv[2] if len(sys.argv) > 2 else "electricity"
    price = sys.argv[3] if len(sys.argv) > 3 else None
    main(csv, meter_type, price)
