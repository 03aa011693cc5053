import pytest

from epsilon.services.push_sender import push_sender_service


@pytest.fixture
def sent(monkeypatch):
    """Capture pushes; tokens starting with 'bad' fail."""
    calls = []

    async def fake_send(device_token, payload):
        calls.append((device_token, payload))
        return not device_token.startswith("bad")

    monkeypatch.setattr(push_sender_service, "send_emergency_call", fake_send)
    return calls


async def _register(client, headers, token):
    await client.post("/api/device", json={"deviceName": token, "deviceToken": token}, headers=headers)


async def test_report_requires_session(client, user, sent):
    response = await client.post("/api/report", json={})
    assert response.status_code == 401
    assert sent == []


async def test_report_without_devices(client, user, auth_headers, sent):
    response = await client.post("/api/report", json={}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"error": "No devices registered for this user"}


async def test_report_fans_out_to_every_device(client, user, auth_headers, sent):
    await _register(client, auth_headers, "good-one")
    await _register(client, auth_headers, "good-two")

    response = await client.post(
        "/api/report",
        json={"reportId": "r-1", "latitude": 51.5, "longitude": -0.12},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Emergency call triggered successfully"
    assert body["devicesNotified"] == 2
    assert body["totalDevices"] == 2
    assert body["reportId"] == "r-1"

    assert sorted(token for token, _ in sent) == ["good-one", "good-two"]
    payload = sent[0][1]
    data = payload.to_data()
    assert data["type"] == "EMERGENCY_CALL"
    assert data["userId"] == user.id
    assert data["latitude"] == "51.5"
    assert data["timestamp"].endswith("Z")


async def test_report_generates_report_id(client, user, auth_headers, sent):
    await _register(client, auth_headers, "good-one")

    response = await client.post("/api/report", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["reportId"]


async def test_partial_delivery_is_reported(client, user, auth_headers, sent):
    await _register(client, auth_headers, "good-one")
    await _register(client, auth_headers, "bad-one")

    response = await client.post("/api/report", json={}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["devicesNotified"] == 1
    assert response.json()["totalDevices"] == 2


async def test_report_fails_when_no_device_reached(client, user, auth_headers, sent):
    await _register(client, auth_headers, "bad-one")

    response = await client.post("/api/report", json={}, headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to send emergency notification to any device"}
