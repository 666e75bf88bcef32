import json

import health
from conftest import load_event
from utils import __version__


def test_health_reports_ok_and_version():
    resp = health.lambda_handler(load_event("api_health.json"), None)

    assert resp["statusCode"] == 200
    assert resp["headers"]["Content-Type"] == "application/json"
    assert json.loads(resp["body"]) == {"status": "ok", "version": __version__}
