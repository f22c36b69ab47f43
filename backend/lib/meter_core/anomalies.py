"""
Anomaly detection over meters and annualized consumption.

All thresholds and the set of dismissed alert ids come in through an
AlertSettings value; nothing here keeps state between calls.
"""
import logging
import os
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional

from .consumption import annual_consumption, reading_status, trailing_year_consumption, months_back
from .grading import find_benchmark
from .models import (
    Alert,
    AlertType,
    Benchmark,
    Meter,
    MeterType,
    ReadingStatus,
    Severity,
)
from .normalizer import normalize_readings

logger = logging.getLogger(__name__)

SEVERITY_ORDER = (Severity.CRITICAL, Severity.WARNING, Severity.INFO)


@dataclass(frozen=True)
class AlertSettings:
    consumption_spike: bool = True
    benchmark_exceeded: bool = True
    reading_overdue: bool = True
    interval_anomalies: bool = True
    spike_threshold: float = 20.0
    critical_threshold: float = 40.0
    benchmark_severity: Severity = Severity.INFO
    interval_spike_ratio: float = 1.5
    interval_critical_ratio: float = 2.0
    interval_drop_ratio: float = 0.3
    interval_drop_min_average: float = 0.1
    dismissed: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_env(cls) -> "AlertSettings":
        """
        Build settings from environment variables, falling back to defaults:
        ALERT_SPIKE_THRESHOLD, ALERT_CRITICAL_THRESHOLD, ALERT_BENCHMARK_SEVERITY
        """
        return cls(
            spike_threshold=float(os.getenv("ALERT_SPIKE_THRESHOLD", "20")),
            critical_threshold=float(os.getenv("ALERT_CRITICAL_THRESHOLD", "40")),
            benchmark_severity=Severity(os.getenv("ALERT_BENCHMARK_SEVERITY", "info")),
        )

    def dismiss(self, alert_id: str) -> "AlertSettings":
        return replace(self, dismissed=self.dismissed | {alert_id})


def _spike_alert(alert_id: str, current: Optional[float], prior: Optional[float],
                 settings: AlertSettings, meter_id: Optional[str] = None,
                 meter_type: Optional[MeterType] = None) -> Optional[Alert]:
    if current is None or prior is None or prior <= 0:
        return None
    change = (current - prior) / prior * 100
    if change <= settings.spike_threshold:
        return None
    severity = Severity.CRITICAL if change > settings.critical_threshold else Severity.WARNING
    return Alert(
        id=alert_id,
        type=AlertType.CONSUMPTION_SPIKE,
        severity=severity,
        meter_id=meter_id,
        meter_type=meter_type,
        value=current,
        reference=prior,
        change_pct=round(change, 1),
    )


def year_over_year_alerts(current: Mapping[MeterType, float], prior: Mapping[MeterType, float],
                          settings: AlertSettings = AlertSettings()) -> List[Alert]:
    """Spike alerts per meter type comparing this year's consumption to last year's."""
    alerts = []
    for meter_type, value in current.items():
        meter_type = MeterType(meter_type)
        alert = _spike_alert(f"spike_{meter_type.value}", value, prior.get(meter_type), settings,
                             meter_type=meter_type)
        if alert is not None:
            alerts.append(alert)
    return order_by_severity(alerts)


def benchmark_alert(meter_id: str, meter_type: MeterType, annual: Optional[float],
                    benchmark: Optional[Benchmark],
                    settings: AlertSettings = AlertSettings()) -> Optional[Alert]:
    if annual is None or benchmark is None or annual <= benchmark.high:
        return None
    return Alert(
        id=f"benchmark_{meter_id}",
        type=AlertType.BENCHMARK_EXCEEDED,
        severity=settings.benchmark_severity,
        meter_id=meter_id,
        meter_type=MeterType(meter_type),
        value=annual,
        reference=benchmark.high,
    )


def reading_status_alert(meter: Meter, today: date) -> Optional[Alert]:
    series = normalize_readings(meter.readings)
    last_date = series[-1].reading_date if series else None
    status = reading_status(last_date, meter.reading_interval_days, today)
    if status == ReadingStatus.OVERDUE:
        return Alert(id=f"overdue_{meter.id}", type=AlertType.READING_OVERDUE,
                     severity=Severity.CRITICAL, meter_id=meter.id, meter_type=meter.type)
    if status == ReadingStatus.DUE:
        return Alert(id=f"due_{meter.id}", type=AlertType.READING_OVERDUE,
                     severity=Severity.WARNING, meter_id=meter.id, meter_type=meter.type)
    return None


def interval_alerts(meter: Meter, today: date, settings: AlertSettings = AlertSettings()) -> List[Alert]:
    """
    Checks on the readings of the last 12 months: a stale meter, and the latest
    daily rate against the average daily rate of the earlier intervals.
    """
    interval = meter.reading_interval_days or 30
    since = months_back(today, 12)
    series = [r for r in normalize_readings(meter.readings) if r.reading_date >= since]
    if not series:
        return [Alert(id=f"stale_{meter.id}", type=AlertType.STALE_METER, severity=Severity.CRITICAL,
                      meter_id=meter.id, meter_type=meter.type)]

    alerts = []
    days_since = (today - series[-1].reading_date).days
    if days_since > interval * 2:
        severity = Severity.CRITICAL if days_since > interval * 3 else Severity.WARNING
        alerts.append(Alert(id=f"stale_{meter.id}", type=AlertType.STALE_METER, severity=severity,
                            meter_id=meter.id, meter_type=meter.type, value=days_since,
                            reference=interval))

    if len(series) < 3:
        return alerts

    rates = []
    for prev, curr in zip(series, series[1:]):
        days = max(1, (curr.reading_date - prev.reading_date).days)
        rates.append((curr.reading_value - prev.reading_value) / days)
    historical = rates[:-1]
    average = sum(historical) / len(historical)
    latest = rates[-1]
    if average <= 0:
        return alerts

    ratio = latest / average
    if ratio > settings.interval_spike_ratio:
        severity = Severity.CRITICAL if ratio > settings.interval_critical_ratio else Severity.WARNING
        alerts.append(Alert(id=f"interval_spike_{meter.id}", type=AlertType.INTERVAL_SPIKE,
                            severity=severity, meter_id=meter.id, meter_type=meter.type,
                            value=latest, reference=average, change_pct=round((ratio - 1) * 100, 1)))
    if ratio < settings.interval_drop_ratio and average > settings.interval_drop_min_average:
        alerts.append(Alert(id=f"interval_drop_{meter.id}", type=AlertType.INTERVAL_DROP,
                            severity=Severity.WARNING, meter_id=meter.id, meter_type=meter.type,
                            value=latest, reference=average, change_pct=round((ratio - 1) * 100, 1)))
    return alerts


def order_by_severity(alerts: Iterable[Alert]) -> List[Alert]:
    """Most severe first, keeping the original order within a severity."""
    buckets: Dict[Severity, List[Alert]] = {s: [] for s in SEVERITY_ORDER}
    for alert in alerts:
        buckets[alert.severity].append(alert)
    return [a for s in SEVERITY_ORDER for a in buckets[s]]


def detect_anomalies(meters: Iterable[Meter], settings: AlertSettings = AlertSettings(),
                     today: Optional[date] = None,
                     benchmark_for: Optional[Callable[[Meter], Optional[Benchmark]]] = None) -> List[Alert]:
    """
    Run every enabled check over the meters.

    Dismissed alerts stay in the result with ``dismissed`` set; callers that
    only want open alerts use ``active_alerts``.
    """
    today = today or date.today()
    benchmark_for = benchmark_for or (lambda m: find_benchmark(m.type))
    alerts: List[Alert] = []
    count = 0
    for meter in meters:
        count += 1
        if settings.reading_overdue:
            alert = reading_status_alert(meter, today)
            if alert is not None:
                alerts.append(alert)
        if settings.consumption_spike:
            current, prior = trailing_year_consumption(meter.readings, today)
            alert = _spike_alert(f"spike_{meter.id}", current, prior, settings,
                                 meter_id=meter.id, meter_type=meter.type)
            if alert is not None:
                alerts.append(alert)
        if settings.benchmark_exceeded:
            alert = benchmark_alert(meter.id, meter.type, annual_consumption(meter.readings),
                                    benchmark_for(meter), settings)
            if alert is not None:
                alerts.append(alert)
        if settings.interval_anomalies:
            alerts.extend(interval_alerts(meter, today, settings))

    for alert in alerts:
        alert.dismissed = alert.id in settings.dismissed
    logger.info("analyzed %d meters, found %d alerts", count, len(alerts))
    return order_by_severity(alerts)


def active_alerts(alerts: Iterable[Alert]) -> List[Alert]:
    return [a for a in alerts if not a.dismissed]
