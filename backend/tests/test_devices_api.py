from datetime import datetime

from sqlalchemy import select, update

from epsilon.database import async_session
from epsilon.models import Device
from epsilon.services import device_registry

DEVICE = {
    "deviceName": "Pixel 8",
    "deviceToken": "fcm-token-aaaaaaaaaaaaaaaaaaaa",
    "deviceModel": "Pixel 8",
    "osVersion": "Android 14",
}


async def test_register_device(client, user, auth_headers):
    response = await client.post("/api/device", json=DEVICE, headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Device registered successfully"
    assert body["device"]["deviceToken"] == DEVICE["deviceToken"]
    assert body["device"]["userId"] == user.id


async def test_register_is_idempotent_per_token(client, user, auth_headers):
    first = (await client.post("/api/device", json=DEVICE, headers=auth_headers)).json()
    stale = datetime(2020, 1, 1)
    async with async_session() as session:
        await session.execute(
            update(Device).where(Device.id == first["device"]["id"]).values(last_active_at=stale)
        )
        await session.commit()

    second = (await client.post(
        "/api/device",
        json={**DEVICE, "appVersion": "2.0.0"},
        headers=auth_headers,
    )).json()

    assert second["message"] == "Device updated successfully"
    assert second["device"]["id"] == first["device"]["id"]
    assert second["device"]["appVersion"] == "2.0.0"
    assert datetime.fromisoformat(second["device"]["lastActiveAt"].rstrip("Z")) > stale

    response = await client.get("/api/device", headers=auth_headers)
    assert len(response.json()["devices"]) == 1


async def test_concurrent_first_registration_reuses_winning_row(user, monkeypatch):
    async with async_session() as session:
        winner, created = await device_registry.upsert_device(
            session, user.id, DEVICE["deviceToken"], "Pixel 8"
        )
    assert created is True

    # The losing request looked before the winner committed
    real_find = device_registry._find_device
    lookups = []

    async def find_after_race(session, user_id, device_token):
        lookups.append(device_token)
        if len(lookups) == 1:
            return None
        return await real_find(session, user_id, device_token)

    monkeypatch.setattr(device_registry, "_find_device", find_after_race)

    async with async_session() as session:
        device, created = await device_registry.upsert_device(
            session, user.id, DEVICE["deviceToken"], "Pixel 8", app_version="2.0.0"
        )

    assert created is False
    assert device.id == winner.id
    assert device.app_version == "2.0.0"

    async with async_session() as session:
        result = await session.execute(select(Device).where(Device.user_id == user.id))
        assert len(result.scalars().all()) == 1


async def test_same_token_for_two_users_is_two_rows(client, user, other_user, auth_headers, other_headers):
    await client.post("/api/device", json=DEVICE, headers=auth_headers)
    response = await client.post("/api/device", json=DEVICE, headers=other_headers)

    assert response.json()["message"] == "Device registered successfully"


async def test_register_requires_name_and_token(client, user, auth_headers):
    response = await client.post("/api/device", json={"deviceToken": "abc"}, headers=auth_headers)
    assert response.status_code == 400


async def test_lookup_by_token(client, user, auth_headers):
    await client.post("/api/device", json=DEVICE, headers=auth_headers)

    response = await client.get("/api/device", params={"deviceToken": DEVICE["deviceToken"]}, headers=auth_headers)
    assert response.json()["exists"] is True
    assert response.json()["device"]["deviceName"] == "Pixel 8"

    response = await client.get("/api/device", params={"deviceToken": "unknown"}, headers=auth_headers)
    assert response.json() == {"exists": False, "device": None}


async def test_update_device(client, user, auth_headers):
    device = (await client.post("/api/device", json=DEVICE, headers=auth_headers)).json()["device"]

    response = await client.patch(
        "/api/device",
        json={"deviceId": device["id"], "deviceName": "Kitchen phone"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["device"]["deviceName"] == "Kitchen phone"
    assert response.json()["device"]["osVersion"] == "Android 14"


async def test_update_other_users_device(client, user, other_user, auth_headers, other_headers):
    device = (await client.post("/api/device", json=DEVICE, headers=other_headers)).json()["device"]

    response = await client.patch(
        "/api/device",
        json={"deviceId": device["id"], "deviceName": "Mine now"},
        headers=auth_headers,
    )

    assert response.status_code == 404
