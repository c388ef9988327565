"""Shared fixtures: fake clock, per-test storage, recording mail relay, HTTP client."""

import pytest
from fastapi.testclient import TestClient

from src.app import create_app
from tst.support import BROWSER_UA, FakeClock, RecordingMailRelay, make_settings


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def mail_relay(settings, clock):
    return RecordingMailRelay(settings, clock)


@pytest.fixture
def app(settings, clock, mail_relay):
    return create_app(settings=settings, clock=clock, mail_relay=mail_relay)


@pytest.fixture
def client(app):
    # Context manager runs the startup handler that creates the session table
    with TestClient(app, headers={"User-Agent": BROWSER_UA}) as test_client:
        yield test_client


@pytest.fixture
def fetch_token(client):
    def _fetch() -> str:
        response = client.get("/api/contact/csrf-token")
        assert response.status_code == 200
        return response.json()["csrf_token"]
    return _fetch
