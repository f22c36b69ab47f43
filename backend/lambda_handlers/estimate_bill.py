# backend/lambda_handlers/estimate_bill.py
"""
Lambda function to estimate annual consumption and cost per meter
Triggered by API Gateway; the meters travel in the request body
"""
import json
import logging
import os

from backend.lib.meter_core.errors import ReadingValidationError
from backend.lib.meter_core.estimator import BillingEstimator
from backend.lib.meter_core.io import meter_from_dict
from backend.lib.meter_core.models import MeterType

logger = logging.getLogger()
logger.setLevel(os.getenv('LOG_LEVEL', 'INFO'))

DEFAULT_GRID_PRICE = float(os.getenv('DEFAULT_GRID_PRICE', '0.32'))

RESPONSE_HEADERS = {
    'Content-Type': 'application/json',
    'Access-Control-Allow-Origin': os.getenv('CORS_ALLOW_ORIGIN', '*'),
    'Access-Control-Allow-Methods': 'POST,OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type',
}


def lambda_handler(event, context):
    """
    Estimate consumption and cost for the meters in the body.

    Body:
    - meters: Required, list of meters with their readings
    - prices: Optional, per meter type price overrides
    """
    logger.info("Received event with keys: %s", sorted(event.keys()))

    try:
        body = _parse_body(event)
        meters = body.get('meters')
        if not isinstance(meters, list):
            return response(400, {'error': 'meters is required'})

        prices = {MeterType.ELECTRICITY: DEFAULT_GRID_PRICE}
        prices.update(body.get('prices') or {})
        estimator = BillingEstimator(prices)

        results = []
        for meter in (meter_from_dict(m) for m in meters):
            estimate = estimator.estimate_meter(meter)
            results.append({
                'meter_id': meter.id,
                'type': meter.type.value,
                'annual_consumption': estimate['annual_consumption'] if estimate else None,
                'estimated_cost': estimate['cost'] if estimate else None,
                'price_per_unit': estimator.price_for(meter.type),
            })

        total = round(sum(r['estimated_cost'] or 0 for r in results), 2)
        return response(200, {
            'meters': results,
            'total_estimated_cost': total,
            'currency': 'EUR'
        })

    except ValueError as e:
        return response(400, {'error': str(e)})
    except Exception as e:
        logger.exception("Error estimating bill")
        return response(500, {'error': str(e)})


def _parse_body(event) -> dict:
    body = event.get('body') or {}
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except json.JSONDecodeError:
            raise ReadingValidationError('body must be JSON')
    if not isinstance(body, dict):
        raise ReadingValidationError('body must be a JSON object')
    return body


def response(status_code: int, body: dict) -> dict:
    """API Gateway response; dates and enums in the body are serialized as strings."""
    return {
        'statusCode': status_code,
        'headers': dict(RESPONSE_HEADERS),
        'body': json.dumps(body, default=str),
    }
