# backend/lambda_handlers/detect_anomalies.py
"""
Lambda function to detect consumption anomalies
Can be triggered by a scheduled event or API Gateway; the meters travel in the body
"""
import logging
import os
from datetime import date

from backend.lambda_handlers.estimate_bill import _parse_body, response
from backend.lib.meter_core.anomalies import AlertSettings, active_alerts, detect_anomalies
from backend.lib.meter_core.io import meter_from_dict, parse_date, to_payload

logger = logging.getLogger()
logger.setLevel(os.getenv('LOG_LEVEL', 'INFO'))


def lambda_handler(event, context):
    """
    Run the anomaly checks.

    Body:
    - meters: Required, list of meters with their readings
    - today: Optional ISO date, defaults to the current date
    - dismissed: Optional list of alert ids already dismissed
    """
    try:
        body = _parse_body(event)
        meters = body.get('meters')
        if not isinstance(meters, list):
            return response(400, {'error': 'meters is required'})

        today = parse_date(body['today']) if body.get('today') else date.today()
        settings = AlertSettings.from_env()
        for alert_id in body.get('dismissed') or []:
            settings = settings.dismiss(alert_id)

        parsed = [meter_from_dict(m) for m in meters]
        alerts = active_alerts(detect_anomalies(parsed, settings, today))
        logger.info("Analyzed %d meters, %d active alerts", len(parsed), len(alerts))

        return response(200, {
            'anomalies': to_payload(alerts),
            'count': len(alerts),
            'meters_analyzed': len(parsed),
            'date': today.isoformat(),
        })

    except ValueError as e:
        return response(400, {'error': str(e)})
    except Exception as e:
        logger.exception("Anomaly detection failed")
        return response(500, {'error': str(e)})
