# tests/test_anomalies.py
from backend.lib.meter_core.anomalies import (
    AlertSettings,
    active_alerts,
    benchmark_alert,
    detect_anomalies,
    interval_alerts,
    order_by_severity,
    year_over_year_alerts,
)
from backend.lib.meter_core.grading import find_benchmark
from backend.lib.meter_core.models import Alert, AlertType, Meter, MeterReading, MeterType, Severity
from datetime import date

TODAY = date(2025, 6, 30)

def monthly_meter(last_value):
    values = [0, 100, 200, 300, 400, last_value]
    readings = [MeterReading("m1", date(2025, month, 1), v) for month, v in zip(range(1, 7), values)]
    return Meter("m1", MeterType.ELECTRICITY, readings=readings)

def test_year_over_year_spike():
    alerts = year_over_year_alerts({MeterType.GAS: 1300, MeterType.ELECTRICITY: 1150},
                                   {MeterType.GAS: 1000, MeterType.ELECTRICITY: 1000})
    assert [a.id for a in alerts] == ["spike_gas"]
    assert alerts[0].severity == Severity.WARNING
    assert alerts[0].change_pct == 30.0

def test_year_over_year_critical_and_no_prior():
    alerts = year_over_year_alerts({MeterType.GAS: 1500, MeterType.HEATING: 900},
                                   {MeterType.GAS: 1000, MeterType.HEATING: 0})
    assert len(alerts) == 1
    assert alerts[0].severity == Severity.CRITICAL

def test_threshold_is_configurable():
    settings = AlertSettings(spike_threshold=10, critical_threshold=12)
    alerts = year_over_year_alerts({MeterType.GAS: 1150}, {MeterType.GAS: 1000}, settings)
    assert alerts[0].severity == Severity.CRITICAL

def test_benchmark_alert():
    benchmark = find_benchmark(MeterType.ELECTRICITY)
    alert = benchmark_alert("m1", MeterType.ELECTRICITY, 2600, benchmark)
    assert alert.type == AlertType.BENCHMARK_EXCEEDED
    assert alert.severity == Severity.INFO
    assert alert.reference == 2500
    assert benchmark_alert("m1", MeterType.ELECTRICITY, 2500, benchmark) is None
    assert benchmark_alert("m1", MeterType.ELECTRICITY, 2600, None) is None

def test_interval_spike():
    alerts = interval_alerts(monthly_meter(1000), date(2025, 6, 10))
    assert [a.id for a in alerts] == ["interval_spike_m1"]
    assert alerts[0].severity == Severity.CRITICAL

def test_interval_drop():
    alerts = interval_alerts(monthly_meter(405), date(2025, 6, 10))
    assert [a.id for a in alerts] == ["interval_drop_m1"]
    assert alerts[0].severity == Severity.WARNING

def test_interval_regular_consumption():
    assert interval_alerts(monthly_meter(500), date(2025, 6, 10)) == []

def test_stale_meter_without_recent_readings():
    meter = Meter("m1", MeterType.GAS, readings=[MeterReading("m1", date(2023, 1, 1), 5)])
    alerts = interval_alerts(meter, TODAY)
    assert alerts[0].type == AlertType.STALE_METER
    assert alerts[0].severity == Severity.CRITICAL

def test_stale_meter_warning():
    meter = Meter("m1", MeterType.GAS, readings=[MeterReading("m1", date(2025, 4, 20), 5)])
    alerts = interval_alerts(meter, TODAY)
    assert alerts[0].severity == Severity.WARNING
    assert alerts[0].value == 71

def order_fixture():
    return Meter("m1", MeterType.ELECTRICITY, readings=[
        MeterReading("m1", date(2024, 1, 1), 0),
        MeterReading("m1", date(2024, 12, 31), 5000),
    ])

def test_detect_anomalies_order():
    alerts = detect_anomalies([order_fixture()], today=TODAY)
    assert [a.id for a in alerts] == ["overdue_m1", "stale_m1", "benchmark_m1"]
    assert [a.severity for a in alerts] == [Severity.CRITICAL, Severity.CRITICAL, Severity.INFO]

def test_detect_anomalies_respects_toggles():
    settings = AlertSettings(interval_anomalies=False)
    alerts = detect_anomalies([order_fixture()], settings, today=TODAY)
    assert [a.id for a in alerts] == ["overdue_m1", "benchmark_m1"]

def test_dismissed_alerts_are_marked():
    settings = AlertSettings().dismiss("benchmark_m1")
    alerts = detect_anomalies([order_fixture()], settings, today=TODAY)
    assert len(alerts) == 3
    assert [a.id for a in active_alerts(alerts)] == ["overdue_m1", "stale_m1"]

def test_order_by_severity_is_stable():
    alerts = [
        Alert("a", AlertType.BENCHMARK_EXCEEDED, Severity.INFO),
        Alert("b", AlertType.CONSUMPTION_SPIKE, Severity.WARNING),
        Alert("c", AlertType.READING_OVERDUE, Severity.CRITICAL),
        Alert("d", AlertType.CONSUMPTION_SPIKE, Severity.WARNING),
    ]
    assert [a.id for a in order_by_severity(alerts)] == ["c", "b", "d", "a"]

def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("ALERT_SPIKE_THRESHOLD", "15")
    monkeypatch.setenv("ALERT_BENCHMARK_SEVERITY", "warning")
    settings = AlertSettings.from_env()
    assert settings.spike_threshold == 15
    assert settings.critical_threshold == 40
    assert settings.benchmark_severity == Severity.WARNING

def test_detect_anomalies_year_over_year_spike():
    meter = Meter("g1", MeterType.GAS, readings=[
        MeterReading("g1", date(2023, 7, 1), 0),
        MeterReading("g1", date(2024, 6, 1), 1000),
        MeterReading("g1", date(2024, 7, 1), 1000),
        MeterReading("g1", date(2025, 6, 1), 2500),
    ])
    settings = AlertSettings(benchmark_exceeded=False, reading_overdue=False, interval_anomalies=False)
    alerts = detect_anomalies([meter], settings, today=TODAY)
    assert [a.id for a in alerts] == ["spike_g1"]
    assert alerts[0].severity == Severity.CRITICAL
    assert alerts[0].value == 1500
    assert alerts[0].reference == 1000
    assert alerts[0].change_pct == 50.0

def test_no_spike_without_prior_year():
    assert year_over_year_alerts({MeterType.GAS: 1500}, {}) == []
    assert year_over_year_alerts({MeterType.GAS: 1500}, {MeterType.GAS: 0}) == []
