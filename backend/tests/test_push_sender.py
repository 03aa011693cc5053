from types import SimpleNamespace

from firebase_admin import messaging

from epsilon.services.push_sender import (
    EmergencyPushPayload,
    PushConfig,
    PushSenderService,
    build_emergency_message,
)


def payload(**overrides):
    fields = {"user_id": "u-1", "timestamp": "2024-01-01T00:00:00Z", "report_id": "r-1"}
    fields.update(overrides)
    return EmergencyPushPayload(**fields)


def test_payload_data_is_all_strings():
    data = payload(latitude=51.5, longitude=-0.12).to_data()

    assert data == {
        "type": "EMERGENCY_CALL",
        "userId": "u-1",
        "reportId": "r-1",
        "timestamp": "2024-01-01T00:00:00Z",
        "latitude": "51.5",
        "longitude": "-0.12",
    }


def test_payload_without_full_location_omits_it():
    data = payload(latitude=51.5).to_data()
    assert "latitude" not in data
    assert "longitude" not in data


def test_emergency_message_is_high_priority_data_message():
    message = build_emergency_message("device-token", payload())

    assert message.token == "device-token"
    assert message.data["type"] == "EMERGENCY_CALL"
    assert message.android.priority == "high"
    assert message.notification is None


def test_missing_credentials_disable_push():
    service = PushSenderService()
    service.configure(PushConfig())

    assert service.available is False
    assert "FIREBASE_PROJECT_ID" in service.init_error


def test_malformed_service_account_json():
    service = PushSenderService()
    service.configure(PushConfig(service_account_json="not json"))

    assert service.available is False
    assert "not a valid JSON object" in service.init_error


async def test_send_without_firebase_fails():
    service = PushSenderService()
    assert await service.send_emergency_call("device-token", payload()) is False


async def test_send_to_devices_counts_results(monkeypatch):
    service = PushSenderService()

    async def fake_send(token, data):
        return token != "stale"

    monkeypatch.setattr(service, "send_emergency_call", fake_send)
    devices = [SimpleNamespace(device_token=t) for t in ("a", "stale", "b")]

    assert await service.send_to_devices(devices, payload()) == (2, 1)
    assert await service.send_to_devices([], payload()) == (0, 0)


async def test_unexpected_send_error_counts_as_one_failure(monkeypatch):
    service = PushSenderService()
    service._app = SimpleNamespace(name="epsilon")

    def fake_send(message, app=None):
        if message.token == "broken":
            raise ConnectionError("transport closed")
        return f"projects/p/messages/{message.token}"

    monkeypatch.setattr(messaging, "send", fake_send)
    devices = [SimpleNamespace(device_token=t) for t in ("a", "broken", "b")]

    assert await service.send_to_devices(devices, payload()) == (2, 1)
