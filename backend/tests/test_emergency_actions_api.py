async def _create(client, headers, **fields):
    payload = {"actionType": "call", "actionData": "+15551234567", **fields}
    response = await client.post("/api/emergency-action", json=payload, headers=headers)
    assert response.status_code == 200
    return response.json()["action"]


async def test_list_is_ordered_by_priority(client, user, auth_headers):
    await _create(client, auth_headers, priority=3, actionData="third")
    await _create(client, auth_headers, priority=1, actionData="first")
    await _create(client, auth_headers, priority=2, actionType="message", actionData="second")

    response = await client.get("/api/emergency-action", headers=auth_headers)

    actions = response.json()["actions"]
    assert [a["priority"] for a in actions] == [1, 2, 3]
    assert [a["actionData"] for a in actions] == ["first", "second", "third"]


async def test_equal_priorities_are_allowed(client, user, auth_headers):
    await _create(client, auth_headers, priority=1, actionData="a")
    await _create(client, auth_headers, priority=1, actionData="b")

    response = await client.get("/api/emergency-action", headers=auth_headers)

    assert [a["actionData"] for a in response.json()["actions"]] == ["a", "b"]


async def test_default_priority_and_enabled(client, user, auth_headers):
    action = await _create(client, auth_headers)
    assert action["priority"] == 1
    assert action["isEnabled"] is True


async def test_invalid_action_type(client, user, auth_headers):
    response = await client.post(
        "/api/emergency-action",
        json={"actionType": "email", "actionData": "x"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert "error" in response.json()


async def test_update_and_delete(client, user, auth_headers):
    action = await _create(client, auth_headers)

    response = await client.patch(
        f"/api/emergency-action/{action['id']}",
        json={"priority": 5, "isEnabled": False},
        headers=auth_headers,
    )
    assert response.status_code == 200
    updated = response.json()["action"]
    assert updated["priority"] == 5
    assert updated["isEnabled"] is False
    assert updated["actionType"] == "call"

    response = await client.delete(f"/api/emergency-action/{action['id']}", headers=auth_headers)
    assert response.status_code == 200

    response = await client.get(f"/api/emergency-action/{action['id']}", headers=auth_headers)
    assert response.status_code == 404


async def test_other_users_action_is_not_found(client, user, other_user, auth_headers, other_headers):
    action = await _create(client, other_headers)

    response = await client.patch(
        f"/api/emergency-action/{action['id']}", json={"priority": 2}, headers=auth_headers
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Emergency action not found"}
