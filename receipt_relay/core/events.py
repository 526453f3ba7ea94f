"""
Server-initiated event push and user-facing notifications.

EventHub keeps the set of connected websocket clients and fans JSON events
out to them. Notifier is what the print pipeline calls when a user should be
alerted; it logs, pushes an ``error_notification`` event and optionally rings
the terminal bell.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from typing import Any, Dict, List, Protocol

logger = logging.getLogger(__name__)


class _Client(Protocol):
    def send(self, data: str) -> None: ...


class EventHub:
    """
    Thread-safe registry of event clients.

    Clients are any object with a ``send(str)`` method; a client whose send
    raises is dropped.
    """

    def __init__(self) -> None:
        self._clients: List[_Client] = []
        self._lock = threading.Lock()

    def register(self, client: _Client) -> None:
        with self._lock:
            self._clients.append(client)

    def unregister(self, client: _Client) -> None:
        with self._lock:
            try:
                self._clients.remove(client)
            except ValueError:
                pass

    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def broadcast(self, event: Dict[str, Any]) -> int:
        """
        Send an event to every client. Returns the number of successful sends.
        """
        payload = json.dumps(event, ensure_ascii=False, default=str)
        with self._lock:
            clients = list(self._clients)
        sent = 0
        dead: List[_Client] = []
        for client in clients:
            try:
                client.send(payload)
                sent += 1
            except Exception:
                dead.append(client)
        for client in dead:
            self.unregister(client)
        return sent


class Notifier:
    """
    Deliver user-facing alerts (print failures, validation failures).
    """

    def __init__(self, hub: EventHub) -> None:
        self.hub = hub

    def _ring(self) -> None:
        try:
            sys.stdout.write("\a")
            sys.stdout.flush()
        except (OSError, ValueError):
            pass

    def notify(self, title: str, message: str, icon: str = "", sound: bool = False) -> None:
        logger.warning("[Notification] Title: %s | Message: %s", title, message)
        self.hub.broadcast({"type": "error_notification", "title": title, "message": message, "icon": icon})
        if sound:
            self._ring()


__all__ = ["EventHub", "Notifier"]
