# tests/conftest.py
import json
import os
import sys
import pathlib
from unittest.mock import MagicMock

import pytest

# ---------- Repository root on sys.path ----------
THIS = pathlib.Path(__file__).resolve()
ROOT = THIS.parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Force the test environment before the configuration is read
os.environ["APP_ENV"] = "test"
os.environ.pop("BREVO_API_KEY", None)

from tigli.app import create_app  # noqa: E402


# ---------- Test configuration ----------
class TestConfig:
    TESTING = True
    APP_ENV = "test"
    LOG_LEVEL = None  # Auto-detect per APP_ENV during tests
    SECRET_KEY = "testing-secret"
    BREVO_API_KEY = "test-brevo-key"
    BREVO_API_URL = "https://brevo.test/v3/contacts"
    CRM_TIMEOUT_SECONDS = 5
    CRM_MAX_RETRIES = 0
    THANK_YOU_URL = "/richiesta-inviata"
    FLOORPLAN_PDF_URL = "/static/planimetrie/i-tigli.pdf"
    CORS_ORIGINS = []
    # Very high limits so rate limiting never interferes with other tests
    RATELIMIT_STORAGE_URI = "memory://"
    RATELIMIT_SUBMIT = "1000 per minute"


@pytest.fixture(scope="session")
def app():
    app = create_app(TestConfig)
    yield app


@pytest.fixture()
def client(app):
    return app.test_client(use_cookies=True)


def make_response(status_code=201, body=None):
    """Builds a fake ``requests.Response`` with the given status and JSON body."""
    response = MagicMock()
    response.status_code = status_code
    if body is None:
        response.text = ""
    elif isinstance(body, str):
        response.text = body
    else:
        response.text = json.dumps(body)
    response.ok = 200 <= status_code < 400
    response.json.side_effect = lambda: json.loads(response.text)
    return response


@pytest.fixture()
def crm_calls(monkeypatch):
    """
    Replaces the outbound Brevo call and records every request.

    ``crm_calls.responses`` is consumed in order; once empty, the last
    response (201 by default) is repeated.
    """
    class Recorder(list):
        responses = []

    calls = Recorder()
    calls.responses = [make_response(201)]

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if len(calls.responses) > 1:
            result = calls.responses.pop(0)
        else:
            result = calls.responses[0]
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr("tigli.app.services.crm.requests.post", fake_post)
    return calls


@pytest.fixture()
def crm_response():
    """Factory for fake Brevo responses: ``crm_response(400, {"code": ...})``."""
    return make_response


@pytest.fixture()
def app_factory():
    """Builds a fresh app from ``TestConfig`` with some settings overridden."""
    from tigli.app.extensions import limiter

    def factory(**overrides):
        config = type("OverriddenConfig", (TestConfig,), overrides)
        return create_app(config)

    yield factory
    limiter.reset()
