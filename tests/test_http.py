from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from macla.datamodel import CalendarEvent
from macla.http.app import create_app


def test_health_endpoints(app):
    client = TestClient(app)

    assert client.get("/healthz").text == "ok"
    health = client.get("/api/v1/health").json()
    assert health["status"] == "ok"
    assert health["shutdown_requested"] is False


def test_home_without_index_returns_banner(app):
    assert TestClient(app).get("/").json()["status"] == "ok"


def test_metrics_include_components(app, registry):
    registry.create("u1", "x", 0)

    body = TestClient(app).get("/api/v1/metrics").json()

    assert body["components"]["store"]["reminders"] == 1
    assert body["components"]["dispatcher"]["policy"] == "drop"
    assert body["components"]["event_reminders"] == {"pending": 0}
    assert body["runtime"]["reminders"]["created"] >= 1


def test_weather_requires_key_and_city(app, control, services, tmp_path):
    no_key = create_app(control, services, public_dir=tmp_path / "other", weather_api_key="")

    assert TestClient(no_key).get("/api/weather?city=Rosario").status_code == 500
    assert TestClient(app).get("/api/weather").status_code == 400


def test_weather_remembers_last_city(app, users, monkeypatch):
    fetch = AsyncMock(return_value={"name": "Córdoba", "main": {"temp": 21}})
    monkeypatch.setattr("macla.http.app.fetch_weather", fetch)

    resp = TestClient(app).get("/api/weather", params={"city": "Córdoba", "identity": "u1"})

    assert resp.status_code == 200
    assert resp.json()["name"] == "Córdoba"
    fetch.assert_awaited_once_with("Córdoba", "test-key")
    assert users.get_user("u1").prefs["last_city"] == "Córdoba"


def test_weather_lookup_failure(app, monkeypatch):
    monkeypatch.setattr("macla.http.app.fetch_weather", AsyncMock(side_effect=OSError("offline")))

    assert TestClient(app).get("/api/weather?city=Rosario").status_code == 500


def test_calendar_probe(app, services):
    services.calendar.create_event.return_value = CalendarEvent(
        id="e1", summary="Test MACLA-IA", start_iso="", end_iso="", html_link="https://calendar.example/e1",
    )

    body = TestClient(app).get("/dev/calendar/test").json()

    assert body == {"ok": True, "event": "https://calendar.example/e1"}


def test_calendar_probe_without_client(app, services):
    services.calendar = None

    resp = TestClient(app).get("/dev/calendar/test")

    assert resp.status_code == 500
    assert resp.json()["ok"] is False
