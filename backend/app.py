"""
=============================================================================
METER BILLING ENGINE - FLASK APPLICATION
=============================================================================

JSON API over the consumption & billing calculation engine
(backend.lib.meter_core). The engine is stateless: every request carries the
meters, units or buildings it should be computed on, nothing is stored.

Endpoints:
- POST /consumption            annual consumption + cost per meter
- POST /cost                   cost for a consumption figure
- POST /grade                  efficiency grade against a benchmark
- POST /forecast               linear trend forecast over monthly totals
- POST /anomalies              alert list for a set of meters
- POST /allocation/heating     HeizkostenV split (units or whole building)
- POST /allocation/mieterstrom PV self-consumption split
- POST /aggregation/monthly    monthly consumption for charts
- POST /aggregation/heatmap    month x weekday daily-rate heatmap
- POST /passport               energy performance figures of a building
- GET  /health

How to run:
    python -m backend.app

Configuration is read from the environment (a .env file is loaded first):
    DEFAULT_GRID_PRICE, DEFAULT_MIETERSTROM_PRICE, FEED_IN_TARIFF,
    ALERT_SPIKE_THRESHOLD, ALERT_CRITICAL_THRESHOLD, FORECAST_MONTHS, LOG_LEVEL
=============================================================================
"""

import logging
import math
import os
from dataclasses import fields, replace
from datetime import date

from flask import Flask, request, jsonify

# dotenv - Load environment variables from .env file
from dotenv import load_dotenv

load_dotenv()

from backend.lib.meter_core.allocation import (
    HeatingSplit,
    UnitFigures,
    allocate_heating_costs,
    allocate_pv_self_consumption,
    mieterstrom_settlement,
    utility_bill,
)
from backend.lib.meter_core.anomalies import AlertSettings, active_alerts, detect_anomalies
from backend.lib.meter_core.consumption import consumption_window
from backend.lib.meter_core.errors import ReadingValidationError
from backend.lib.meter_core.estimator import BillingEstimator, calculate_cost
from backend.lib.meter_core.forecast import forecast
from backend.lib.meter_core.grading import NOT_RATABLE, efficiency_grade, find_benchmark
from backend.lib.meter_core.io import (
    building_from_dict,
    meter_from_dict,
    parse_date,
    reading_from_dict,
    to_payload,
)
from backend.lib.meter_core.models import MeterType, Severity
from backend.lib.meter_core.passport import energy_performance
from backend.lib.meter_core.processor import (
    EnergyAnalyzer,
    heatmap_for_meters,
    monthly_totals_for_meters,
)
from backend.lib.meter_core.tables import group_of, meter_label, unit_label

# =============================================================================
# CONFIGURATION
# =============================================================================

DEFAULT_GRID_PRICE = float(os.getenv("DEFAULT_GRID_PRICE", "0.32"))
DEFAULT_MIETERSTROM_PRICE = float(os.getenv("DEFAULT_MIETERSTROM_PRICE", "0.22"))
FEED_IN_TARIFF = float(os.getenv("FEED_IN_TARIFF", "0.082"))
FORECAST_MONTHS = int(os.getenv("FORECAST_MONTHS", "12"))

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def _body() -> dict:
    """Request JSON body; anything that is not a JSON object is rejected."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ReadingValidationError("JSON object body required")
    return data


def _number(data: dict, key: str, default=None) -> float:
    value = data.get(key, default)
    if value is None:
        raise ReadingValidationError(f"{key} required")
    if isinstance(value, bool):
        raise ReadingValidationError(f"{key} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ReadingValidationError(f"{key} must be a number")
    if not math.isfinite(number):
        raise ReadingValidationError(f"{key} must be finite")
    return number


def _number_list(data: dict, key: str) -> list:
    values = data.get(key)
    if not isinstance(values, list):
        raise ReadingValidationError(f"{key} must be a list")
    try:
        return [float(v) for v in values]
    except (TypeError, ValueError):
        raise ReadingValidationError(f"{key} must contain numbers only")


def _today(data: dict) -> date:
    return parse_date(data["today"]) if data.get("today") else date.today()


def _meters(data: dict) -> list:
    meters = data.get("meters")
    if not isinstance(meters, list):
        raise ReadingValidationError("meters must be a list")
    return [meter_from_dict(m) for m in meters]


def _unit_figures(data: dict) -> list:
    units = data.get("units")
    if not isinstance(units, list):
        raise ReadingValidationError("units must be a list")
    figures = []
    for u in units:
        if not isinstance(u, dict) or not u.get("unit_id"):
            raise ReadingValidationError(f"unit_id required: {u!r}")
        figures.append(UnitFigures(
            unit_id=str(u["unit_id"]),
            consumption=_number(u, "consumption", 0.0),
            area=_number(u, "area", 0.0),
        ))
    return figures


def _alert_settings(data: dict) -> AlertSettings:
    settings = AlertSettings.from_env()
    overrides = data.get("settings") or {}
    if not isinstance(overrides, dict):
        raise ReadingValidationError("settings must be an object")
    known = {}
    for f in fields(AlertSettings):
        if f.name == "dismissed" or f.name not in overrides:
            continue
        value = overrides[f.name]
        if f.type is bool:
            if not isinstance(value, bool):
                raise ReadingValidationError(f"settings.{f.name} must be true or false")
            known[f.name] = value
        elif f.type is Severity:
            known[f.name] = Severity(value)
        else:
            known[f.name] = _number(overrides, f.name)
    dismissed = data.get("dismissed") or []
    if not isinstance(dismissed, list) or not all(isinstance(d, str) for d in dismissed):
        raise ReadingValidationError("dismissed must be a list of alert ids")
    return replace(settings, dismissed=frozenset(dismissed), **known)


# =============================================================================
# ERROR HANDLING
# =============================================================================


@app.errorhandler(ValueError)
def handle_validation_error(error):
    # ReadingValidationError is a ValueError; so are unknown enum keys
    logger.info("rejected request to %s: %s", request.path, error)
    return jsonify({"error": str(error)}), 400


# =============================================================================
# API ROUTES
# =============================================================================


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@app.route("/consumption", methods=["POST"])
def consumption():
    """
    Annual consumption and cost per meter.

    Request Body (JSON):
        {"meters": [{"id": "m1", "type": "electricity", "readings": [...]}],
         "prices": {"electricity": 0.30}}

    A meter without two readings at least 30 days apart reports
    annual_consumption null and cost null.
    """
    data = _body()
    estimator = BillingEstimator(data.get("prices") or {})
    results = []
    for meter in _meters(data):
        window = consumption_window(meter.readings)
        annual = window.annualized_value if window else None
        results.append({
            "meter_id": meter.id,
            "type": meter.type.value,
            "label": meter_label(meter.type),
            "unit": unit_label(meter.type),
            "group": group_of(meter.type),
            "annual_consumption": annual,
            "day_span": window.day_span if window else None,
            "raw_delta": window.raw_delta if window else None,
            "price_per_unit": estimator.price_for(meter.type),
            "cost": estimator.estimate_cost(annual, meter.type) if annual is not None else None,
        })
    return jsonify({"meters": results})


@app.route("/cost", methods=["POST"])
def cost():
    """
    Request Body (JSON):
        {"consumption": 3025, "meter_type": "electricity", "price_per_unit": 0.32}
    """
    data = _body()
    meter_type = MeterType(data.get("meter_type"))
    price = data.get("price_per_unit")
    value = calculate_cost(_number(data, "consumption"), meter_type,
                           float(price) if price is not None else None)
    return jsonify({"meter_type": meter_type.value, "cost": value, "currency": "EUR"})


@app.route("/grade", methods=["POST"])
def grade():
    """
    Either {"actual": 3000, "benchmark_medium": 2800}
    or {"meter": {...}, "building_class": "efh", "persons_range": "2"}.
    """
    data = _body()
    if "meter" in data:
        meter = meter_from_dict(data["meter"])
        window = consumption_window(meter.readings)
        benchmark = find_benchmark(meter.type, data.get("building_class"), data.get("persons_range"))
        if window is None or benchmark is None:
            return jsonify({"meter_id": meter.id, "grade": NOT_RATABLE, "annual_consumption": None})
        return jsonify({
            "meter_id": meter.id,
            "grade": efficiency_grade(window.annualized_value, benchmark.medium),
            "annual_consumption": window.annualized_value,
            "unit": unit_label(meter.type),
            "benchmark": to_payload(benchmark),
        })
    actual = _number(data, "actual")
    return jsonify({"grade": efficiency_grade(actual, _number(data, "benchmark_medium", 0.0))})


@app.route("/forecast", methods=["POST"])
def forecast_route():
    """
    {"monthly_totals": [100, 110, 120]} or {"meters": [...], "months": 12, "today": "2025-06-30"}
    """
    data = _body()
    if "monthly_totals" in data:
        totals = _number_list(data, "monthly_totals")
    else:
        months = int(data.get("months") or FORECAST_MONTHS)
        totals = [m.value for m in monthly_totals_for_meters(_meters(data), months, _today(data))]
    result = forecast(totals)
    if result is None:
        return jsonify({"forecast": None, "reason": "at least 3 monthly totals required"})
    return jsonify({"forecast": to_payload(result), "monthly_totals": totals})


@app.route("/anomalies", methods=["POST"])
def anomalies():
    """
    Request Body (JSON):
        {"meters": [...], "today": "2025-06-30", "dismissed": ["benchmark_m1"],
         "settings": {"spike_threshold": 25}, "limit": 5}

    Alerts come back most severe first; dismissed ones are listed separately.
    """
    data = _body()
    settings = _alert_settings(data)
    alerts = detect_anomalies(_meters(data), settings, _today(data))
    active = active_alerts(alerts)
    limit = data.get("limit")
    if limit:
        active = active[:int(limit)]
    return jsonify({
        "alerts": to_payload(active),
        "dismissed": to_payload([a for a in alerts if a.dismissed]),
        "count": len(alerts),
    })


@app.route("/allocation/heating", methods=["POST"])
def allocation_heating():
    """
    Units form:
        {"units": [{"unit_id": "A", "consumption": 30, "area": 50}, ...],
         "total_cost": 1000, "split": "70_30"}
    Building form (heating + water bill per unit):
        {"building": {...}, "heating_total": 1000, "water_total": 300, "split": "70_30"}
    """
    data = _body()
    split = HeatingSplit.from_key(data.get("split") or "70_30")
    if "building" in data:
        building = building_from_dict(data["building"])
        rows = utility_bill(building, _number(data, "heating_total", 0.0),
                            _number(data, "water_total", 0.0), split)
        return jsonify({"split": split.name, "label": split.label, "units": rows})
    total_cost = _number(data, "total_cost")
    total_area = data.get("total_area")
    results = allocate_heating_costs(_unit_figures(data), total_cost, split,
                                     float(total_area) if total_area else None)
    return jsonify({
        "split": split.name,
        "label": split.label,
        "total_cost": total_cost,
        "allocated": round(sum(r.cost_share for r in results), 2),
        "units": to_payload(results),
    })


@app.route("/allocation/mieterstrom", methods=["POST"])
def allocation_mieterstrom():
    """
    Units form:
        {"units": [{"unit_id": "A", "consumption": 2500}, ...], "pv_available": 3000,
         "pv_price": 0.22, "grid_price": 0.32}
    Building form:
        {"building": {...}, "pv_price": 0.22, "grid_price": 0.32}
    """
    data = _body()
    pv_price = _number(data, "pv_price", DEFAULT_MIETERSTROM_PRICE)
    grid_price = _number(data, "grid_price", DEFAULT_GRID_PRICE)
    if "building" in data:
        settlement = mieterstrom_settlement(building_from_dict(data["building"]), pv_price,
                                            grid_price, _number(data, "feed_in_tariff", FEED_IN_TARIFF))
        return jsonify(to_payload(settlement))
    results = allocate_pv_self_consumption(_unit_figures(data), _number(data, "pv_available"),
                                           pv_price, grid_price)
    return jsonify({
        "pv_allocated": sum(r.consumption_share for r in results),
        "units": to_payload(results),
    })


@app.route("/aggregation/monthly", methods=["POST"])
def aggregation_monthly():
    """{"meters": [...]} or {"readings": [...]}, plus optional "months" and "today"."""
    data = _body()
    months = int(data.get("months") or FORECAST_MONTHS)
    today = _today(data)
    if "readings" in data:
        readings = [reading_from_dict(r, data.get("meter_id")) for r in data["readings"]]
        totals = EnergyAnalyzer(readings).monthly_consumption(months, today)
    else:
        totals = monthly_totals_for_meters(_meters(data), months, today)
    return jsonify({"data": [{"period": t.label, "consumption": t.value} for t in totals]})


@app.route("/aggregation/heatmap", methods=["POST"])
def aggregation_heatmap():
    """
    {"meters": [...], "meter_type": "electricity"}

    Daily rates are interpolated between readings, not metered per day.
    """
    data = _body()
    meters = _meters(data)
    if data.get("meter_type"):
        wanted = MeterType(data["meter_type"])
        meters = [m for m in meters if m.type == wanted]
    grid = heatmap_for_meters(meters)
    return jsonify({
        "grid": grid.averages(),
        "max": grid.max_value(),
        "monthly_totals": grid.monthly_totals(),
    })


@app.route("/passport", methods=["POST"])
def passport():
    """{"building": {...}}"""
    data = _body()
    result = energy_performance(building_from_dict(data.get("building") or {}))
    if result is None:
        return jsonify({"passport": None, "reason": "building has no area"})
    return jsonify({"passport": to_payload(result)})


if __name__ == "__main__":
    app.run(debug=os.getenv("FLASK_DEBUG", "false").lower() == "true")
