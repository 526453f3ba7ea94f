import json
import logging
import threading
import time

import pytest
import simple_websocket
from werkzeug.serving import make_server

from conftest import MACHINE_ID
from receipt_relay import create_app
from receipt_relay.core.events import EventHub, Notifier
from receipt_relay.core.logging import EventHubHandler, JsonFormatter, RequestIdFilter, attach_event_hub
from receipt_relay.web.context import EXTENSION_KEY
from receipt_relay.web.events import WELCOME_MESSAGE


class _Client:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, data):
        if self.fail:
            raise ConnectionError("closed")
        self.sent.append(json.loads(data))


def test_broadcast_drops_dead_clients():
    hub = EventHub()
    good, bad = _Client(), _Client(fail=True)
    hub.register(good)
    hub.register(bad)

    assert hub.broadcast({"type": "ping"}) == 1
    assert good.sent == [{"type": "ping"}]
    assert hub.client_count() == 1

    hub.unregister(good)
    hub.unregister(good)
    assert hub.client_count() == 0


def test_notifier_pushes_error_notification(capsys):
    hub = EventHub()
    client = _Client()
    hub.register(client)

    Notifier(hub).notify("Print Failed", "Failed to print on HP-1: jam", sound=True)
    assert client.sent[-1] == {
        "type": "error_notification",
        "title": "Print Failed",
        "message": "Failed to print on HP-1: jam",
        "icon": "",
    }
    assert "\a" in capsys.readouterr().out


def test_attach_event_hub_forwards_service_logs():
    hub = EventHub()
    client = _Client()
    hub.register(client)

    handler = attach_event_hub(hub, logger_name="receipt_relay.test_events")
    assert attach_event_hub(hub, logger_name="receipt_relay.test_events") is handler

    log = logging.getLogger("receipt_relay.test_events")
    log.setLevel(logging.INFO)
    log.info("Printers refreshed")
    assert client.sent[-1] == {"type": "backend_log", "level": "INFO", "message": "Printers refreshed"}

    other = EventHub()
    attach_event_hub(other, logger_name="receipt_relay.test_events")
    hubs = [h.hub for h in log.handlers if isinstance(h, EventHubHandler)]
    assert hubs == [other]


def test_json_formatter():
    record = logging.LogRecord("receipt_relay", logging.WARNING, __file__, 1, "hello %s", ("there",), None)
    record.request_id = "abc"
    out = json.loads(JsonFormatter().format(record))
    assert out["msg"] == "hello there"
    assert out["level"] == "WARNING"
    assert out["request_id"] == "abc"
    assert "path" not in out


def test_request_filter_stamps_request_fields():
    from flask import Flask, g

    record = logging.LogRecord("receipt_relay", logging.INFO, __file__, 1, "printing", (), None)
    RequestIdFilter().filter(record)
    assert (record.request_id, record.method, record.path) == ("-", "-", "-")

    app = Flask("filter-test")
    with app.test_request_context("/api/print", method="POST"):
        g.request_id = "req-1"
        RequestIdFilter().filter(record)
    assert (record.request_id, record.method, record.path) == ("req-1", "POST", "/api/print")

    out = json.loads(JsonFormatter().format(record))
    assert out["method"] == "POST"
    assert out["path"] == "/api/print"


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def live_server(app_config, fake_backend):
    app = create_app(config=app_config, backend=fake_backend, identity=MACHINE_ID, register_worker=False)
    server = make_server("127.0.0.1", 0, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield app, f"ws://127.0.0.1:{server.server_port}/ws"
    server.shutdown()
    thread.join(5)


def test_websocket_greets_and_forwards_events(live_server):
    app, url = live_server
    services = app.extensions[EXTENSION_KEY]

    ws = simple_websocket.Client.connect(url)
    try:
        greeting = ws.receive(timeout=5)
        assert greeting is not None
        assert json.loads(greeting) == {"type": "connected", "message": WELCOME_MESSAGE}

        # Inbound messages are read and dropped
        ws.send("hello")
        assert _wait_for(lambda: services.hub.client_count() == 1)

        services.notifier.notify("Print Failed", "Failed to print on HP-1: jam")
        events = []
        while not any(e["type"] == "error_notification" for e in events):
            raw = ws.receive(timeout=5)
            assert raw is not None, events
            events.append(json.loads(raw))

        assert events[-1] == {
            "type": "error_notification",
            "title": "Print Failed",
            "message": "Failed to print on HP-1: jam",
            "icon": "",
        }
        logs = [e["message"] for e in events if e["type"] == "backend_log"]
        assert any("Print Failed" in m for m in logs)
        assert not any("hello" in json.dumps(e) for e in events)
    finally:
        ws.close()

    assert _wait_for(lambda: services.hub.client_count() == 0)
