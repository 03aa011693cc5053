import json

from epsilon.services.fall_monitor import FallMonitor


def insert(record_id, is_fall=True, table="falls"):
    return json.dumps({
        "type": "INSERT",
        "table": table,
        "schema": "public",
        "record": {"id": record_id, "user_id": "u-1", "is_fall": is_fall, "detected_at": "2024-05-01T10:30:00Z"},
    })


class FakeChannel:
    def __init__(self, messages):
        self.messages = messages

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message


def recorder():
    handled = []

    async def on_fall(record):
        handled.append(record)
        return True

    return handled, on_fall


async def test_fall_insert_is_handled():
    handled, on_fall = recorder()
    monitor = FallMonitor(on_fall, url="ws://test/api/falls/ws", session_token="tok")

    assert await monitor.handle_message(insert("f-1")) is True
    assert [r["id"] for r in handled] == ["f-1"]


async def test_non_fall_records_are_ignored():
    handled, on_fall = recorder()
    monitor = FallMonitor(on_fall, url="ws://test/api/falls/ws", session_token="tok")

    assert await monitor.handle_message(insert("f-1", is_fall=False)) is False
    assert await monitor.handle_message(insert("f-2", table="medicine")) is False
    assert await monitor.handle_message(json.dumps({"type": "UPDATE", "table": "falls"})) is False
    assert await monitor.handle_message("not json") is False
    assert handled == []


async def test_duplicate_inserts_are_handled_twice():
    handled, on_fall = recorder()
    monitor = FallMonitor(on_fall, url="ws://test/api/falls/ws", session_token="tok")

    await monitor.handle_message(insert("f-1"))
    await monitor.handle_message(insert("f-1"))

    assert len(handled) == 2


async def test_handler_errors_do_not_stop_the_monitor():
    async def on_fall(record):
        raise RuntimeError("call failed")

    monitor = FallMonitor(on_fall, url="ws://test/api/falls/ws", session_token="tok")

    assert await monitor.handle_message(insert("f-1")) is True


async def test_run_subscribes_with_token_and_reconnects():
    handled = []
    urls = []
    attempts = []

    async def on_fall(record):
        handled.append(record)
        monitor.stop()
        return True

    def connect(url):
        urls.append(url)
        attempts.append(url)
        if len(attempts) == 1:
            raise OSError("connection refused")
        return FakeChannel([insert("f-1", is_fall=False), insert("f-2")])

    monitor = FallMonitor(on_fall, url="ws://test/api/falls/ws", session_token="tok", connect=connect, reconnect_delay=0)

    await monitor.run()

    assert urls == ["ws://test/api/falls/ws?token=tok"] * 2
    assert [r["id"] for r in handled] == ["f-2"]
    assert monitor.subscribed is False


async def test_run_without_session_token_returns():
    _, on_fall = recorder()
    connected = []
    monitor = FallMonitor(on_fall, url="ws://test/api/falls/ws", session_token="", connect=connected.append)

    await monitor.run()

    assert connected == []
