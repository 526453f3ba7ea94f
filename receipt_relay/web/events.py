from __future__ import annotations

"""
Websocket event channel.

GET /ws upgrades to a websocket, greets the client with a ``connected``
event and then receives ``backend_log`` and ``error_notification`` events
from the EventHub until it disconnects. Messages sent by clients are read
and discarded.
"""

import json
import threading

from flask import Blueprint, current_app
from flask_sock import Sock

from .context import get_services

events_bp = Blueprint("events", __name__)
sock = Sock()

WELCOME_MESSAGE = "Connected to Receipt Relay printer service"


class _LockedSocket:
    """
    Serialize sends on one websocket; the hub may broadcast from worker threads.
    """

    def __init__(self, ws) -> None:
        self.ws = ws
        self._lock = threading.Lock()

    def send(self, data: str) -> None:
        with self._lock:
            self.ws.send(data)


@sock.route("/ws", bp=events_bp)
def ws_events(ws):
    hub = get_services().hub
    client = _LockedSocket(ws)
    client.send(json.dumps({"type": "connected", "message": WELCOME_MESSAGE}))
    hub.register(client)
    current_app.logger.info("New WebSocket client connected (clients=%d)", hub.client_count())
    try:
        while True:
            if ws.receive() is None:
                break
    except Exception as e:
        current_app.logger.debug("WebSocket closed: %s", e)
    finally:
        hub.unregister(client)
        current_app.logger.info("WebSocket client disconnected (clients=%d)", hub.client_count())
