"""Client IP resolution behind a trusted proxy."""

from fastapi.testclient import TestClient

from src.app import create_app
from tst.support import BROWSER_UA, FakeClock, RecordingMailRelay, make_settings, valid_form


def test_forwarded_for_is_used_when_trusted(tmp_path):
    settings = make_settings(tmp_path, trust_forwarded_for=True)
    clock = FakeClock()
    app = create_app(settings=settings, clock=clock, mail_relay=RecordingMailRelay(settings, clock))

    with TestClient(app, headers={"User-Agent": BROWSER_UA}) as client:
        token = client.get("/api/contact/csrf-token").json()["csrf_token"]
        clock.advance(15)
        response = client.post(
            "/api/contact/submit",
            data=valid_form(token),
            headers={"X-Forwarded-For": "198.51.100.9, 10.0.0.1"},
        )

    assert response.status_code == 200
    event = next(app.state.event_log.iter_events())
    assert event.remote_ip == "198.51.100.9"
