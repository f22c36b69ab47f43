# tests/test_lambda_handlers.py
from backend.lambda_handlers import detect_anomalies, estimate_bill
from datetime import date
import json

READINGS = [
    {"reading_date": "2025-01-01", "reading_value": 1000},
    {"reading_date": "2025-07-01", "reading_value": 2500},
]

def test_estimate_bill():
    body = {"meters": [{"id": "m1", "type": "electricity", "readings": READINGS},
                       {"id": "w1", "type": "water_cold", "readings": []}]}
    res = estimate_bill.lambda_handler({"body": json.dumps(body)}, None)
    assert res["statusCode"] == 200
    data = json.loads(res["body"])
    assert data["meters"][0]["estimated_cost"] == 968.0
    assert data["meters"][1]["annual_consumption"] is None
    assert data["total_estimated_cost"] == 968.0
    assert data["currency"] == "EUR"

def test_estimate_bill_price_override():
    body = {"meters": [{"id": "m1", "type": "electricity", "readings": READINGS}],
            "prices": {"electricity": 0.30}}
    data = json.loads(estimate_bill.lambda_handler({"body": body}, None)["body"])
    assert data["meters"][0]["estimated_cost"] == 907.5

def test_estimate_bill_bad_requests():
    assert estimate_bill.lambda_handler({"body": "not json"}, None)["statusCode"] == 400
    assert estimate_bill.lambda_handler({"body": {}}, None)["statusCode"] == 400
    body = {"meters": [{"id": "m1", "type": "steam"}]}
    assert estimate_bill.lambda_handler({"body": body}, None)["statusCode"] == 400

def test_detect_anomalies():
    body = {
        "meters": [{"id": "m1", "type": "electricity", "readings": [
            {"reading_date": "2024-01-01", "reading_value": 0},
            {"reading_date": "2024-12-31", "reading_value": 5000},
        ]}],
        "today": "2025-06-30",
        "dismissed": ["benchmark_m1"],
    }
    res = detect_anomalies.lambda_handler({"body": json.dumps(body)}, None)
    assert res["statusCode"] == 200
    data = json.loads(res["body"])
    assert [a["id"] for a in data["anomalies"]] == ["overdue_m1", "stale_m1"]
    assert data["meters_analyzed"] == 1
    assert data["date"] == "2025-06-30"

def test_response_serializes_dates_with_cors_headers():
    res = estimate_bill.response(200, {"date": date(2025, 6, 30)})
    assert json.loads(res["body"]) == {"date": "2025-06-30"}
    assert res["headers"]["Content-Type"] == "application/json"
    assert res["headers"]["Access-Control-Allow-Origin"] == "*"
