async def test_emergency_contact_starts_empty(client, user, auth_headers):
    response = await client.get("/api/user/emergency-contact", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"emergencyContactName": None, "emergencyContactPhone": None},
    }


async def test_update_emergency_contact(client, user, auth_headers):
    response = await client.put(
        "/api/user/emergency-contact",
        json={"emergencyContactPhone": "+15550001111", "emergencyContactName": "Sam"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["success"] is True

    response = await client.get("/api/user/emergency-contact", headers=auth_headers)
    assert response.json()["data"] == {
        "emergencyContactName": "Sam",
        "emergencyContactPhone": "+15550001111",
    }


async def test_emergency_contact_phone_is_required(client, user, auth_headers):
    response = await client.put(
        "/api/user/emergency-contact",
        json={"emergencyContactName": "Sam"},
        headers=auth_headers,
    )
    assert response.status_code == 400


async def test_fcm_token_creates_device(client, user, auth_headers):
    response = await client.post("/api/user/fcm-token", json={"fcmToken": "token-one"}, headers=auth_headers)
    assert response.status_code == 200

    response = await client.get("/api/user/fcm-token", headers=auth_headers)
    devices = response.json()["devices"]
    assert len(devices) == 1
    assert devices[0]["deviceToken"] == "token-one"
    assert devices[0]["deviceName"] == "Android Device"


async def test_fcm_token_rotation_reuses_device(client, user, auth_headers):
    await client.post("/api/user/fcm-token", json={"fcmToken": "token-one"}, headers=auth_headers)
    first = (await client.get("/api/user/fcm-token", headers=auth_headers)).json()["devices"][0]

    await client.post(
        "/api/user/fcm-token",
        json={"fcmToken": "token-two", "deviceName": "Pixel"},
        headers=auth_headers,
    )

    devices = (await client.get("/api/user/fcm-token", headers=auth_headers)).json()["devices"]
    assert len(devices) == 1
    assert devices[0]["id"] == first["id"]
    assert devices[0]["deviceToken"] == "token-two"
    assert devices[0]["deviceName"] == "Pixel"


async def test_known_fcm_token_is_refreshed(client, user, auth_headers):
    await client.post("/api/device", json={"deviceName": "A", "deviceToken": "token-a"}, headers=auth_headers)
    await client.post("/api/device", json={"deviceName": "B", "deviceToken": "token-b"}, headers=auth_headers)

    await client.post("/api/user/fcm-token", json={"fcmToken": "token-b"}, headers=auth_headers)

    devices = (await client.get("/api/user/fcm-token", headers=auth_headers)).json()["devices"]
    assert sorted(d["deviceToken"] for d in devices) == ["token-a", "token-b"]
