import httpx
import pytest

from epsilon import main
from epsilon.config import settings
from epsilon.services.companion import companion_service
from epsilon.services.push_receiver import PushReceiver


class FakeResponder:
    def __init__(self):
        self.triggers = []

    async def handle_remote_trigger(self, trigger):
        self.triggers.append(trigger)
        return True


@pytest.fixture
def responder(monkeypatch):
    fake = FakeResponder()
    monkeypatch.setattr(companion_service, "push_receiver", PushReceiver(fake))
    return fake


@pytest.fixture
async def companion_client(monkeypatch):
    monkeypatch.setattr(settings, "mode", "companion")
    monkeypatch.setattr(settings, "push_relay_secret", None)
    app = main.create_app()

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def route_paths(app):
    return {getattr(route, "path", "") for route in app.routes}


def test_push_route_only_in_companion_mode(monkeypatch):
    assert "/api/push" not in route_paths(main.create_app())

    monkeypatch.setattr(settings, "mode", "companion")
    paths = route_paths(main.create_app())
    assert "/api/push" in paths
    assert "/api/report" not in paths


async def test_emergency_push_rings_contact(companion_client, responder):
    response = await companion_client.post("/api/push", json={
        "type": "EMERGENCY_CALL",
        "userId": "u-1",
        "reportId": "r-1",
        "timestamp": "2024-01-01T00:00:00Z",
        "latitude": "51.5",
        "longitude": "-0.12",
    })

    assert response.status_code == 200
    assert response.json() == {"handled": True}
    assert len(responder.triggers) == 1
    trigger = responder.triggers[0]
    assert trigger.report_id == "r-1"
    assert trigger.latitude == 51.5


async def test_other_push_types_are_ignored(companion_client, responder):
    response = await companion_client.post("/api/push", json={"type": "MEDICINE_UPDATED"})

    assert response.json() == {"handled": False}
    assert responder.triggers == []


async def test_relay_secret_is_enforced(companion_client, responder, monkeypatch):
    monkeypatch.setattr(settings, "push_relay_secret", "s3cret")

    response = await companion_client.post("/api/push", json={"type": "EMERGENCY_CALL"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}

    response = await companion_client.post(
        "/api/push",
        json={"type": "EMERGENCY_CALL"},
        headers={"X-Push-Secret": "s3cret"},
    )
    assert response.status_code == 200
    assert len(responder.triggers) == 1
