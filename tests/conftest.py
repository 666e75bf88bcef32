import json
from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest

from utils.config import ZenditConfig, reset_config
from utils.zendit_client import ZenditClient

EVENTS_DIR = Path(__file__).parent / "events"

AUTH_URL = "https://auth.zendit.io/oauth/token"
OPERATORS_URL = "https://api.zendit.io/v1/airtime/operators"
TOPUPS_URL = "https://api.zendit.io/v1/airtime/topups"


def _endpoint(request):
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


class StubZendit:
    """
    Fake Zendit behind httpx.MockTransport.
    Records every request. Each endpoint answers with httpx.Response kwargs
    set by the test, or raises if the test set an exception instead.
    """

    def __init__(self):
        self.requests = []
        self.token_response = {"status_code": 200, "json": {"access_token": "tok-123", "token_type": "Bearer"}}
        self.operators_response = {"status_code": 200, "json": {"data": [{"operatorId": "OP1", "name": "MTN Nigeria"}]}}
        self.topup_response = {"status_code": 200, "json": {"status": "ACCEPTED", "transactionId": "T-1"}}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = _endpoint(request)
        spec = {
            AUTH_URL: self.token_response,
            OPERATORS_URL: self.operators_response,
            TOPUPS_URL: self.topup_response,
        }.get(url, {"status_code": 404, "json": {"error": "unexpected url"}})

        if isinstance(spec, Exception):
            raise spec
        return httpx.Response(**spec)

    def calls_to(self, url):
        return [r for r in self.requests if _endpoint(r) == url]

    def token_form(self):
        return {k: v[0] for k, v in parse_qs(self.calls_to(AUTH_URL)[0].content.decode()).items()}

    def topup_bodies(self):
        return [json.loads(r.content) for r in self.calls_to(TOPUPS_URL)]


@pytest.fixture
def config():
    return ZenditConfig(client_id="test-id", client_secret="test-secret")


@pytest.fixture
def stub_zendit():
    return StubZendit()


@pytest.fixture
def zendit(config, stub_zendit):
    client = ZenditClient(config, transport=httpx.MockTransport(stub_zendit.handler))
    yield client
    client.close()


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_config()
    yield
    reset_config()


def load_event(name):
    with open(EVENTS_DIR / name, "r", encoding="utf-8") as f:
        return json.load(f)
