"""
Logging utilities for Receipt Relay.

- RequestIdFilter attaches request_id, method and path (when serving a request)
- JsonFormatter for structured logs when RECEIPTRELAY_JSON_LOGS=true
- configure_logging() initializes root logging with journald or console,
  and integrates with Flask's logger
- EventHubHandler forwards service log lines to connected event clients
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from receipt_relay.core.events import EventHub


class RequestIdFilter(logging.Filter):
    """
    Stamp records with the current request's id, method and path ("-" when
    logged from a worker thread or at startup).
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        from flask import g, has_request_context, request  # lazy import

        if has_request_context():
            record.request_id = getattr(g, "request_id", "-")
            record.method = request.method
            record.path = request.path
        else:
            record.request_id = getattr(record, "request_id", "-")
            record.method = "-"
            record.path = "-"
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line for log shippers. Request fields are included
    only when the record was emitted while serving a request.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }
        for key in ("method", "path"):
            value = getattr(record, key, "-")
            if value != "-":
                entry[key] = value
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class EventHubHandler(logging.Handler):
    """
    Push formatted log lines to websocket clients as ``backend_log`` events.
    """

    def __init__(self, hub: "EventHub", level: int = logging.INFO) -> None:
        super().__init__(level)
        self.hub = hub
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.hub.broadcast({"type": "backend_log", "level": record.levelname, "message": self.format(record)})
        except Exception:
            self.handleError(record)


def _json_logs_enabled() -> bool:
    return os.environ.get("RECEIPTRELAY_JSON_LOGS", "false").lower() in ("1", "true", "yes")


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure root logging for the application.

    Behavior:
    - Sets root logger level (INFO by default)
    - Clears any existing handlers to avoid duplicates on reload
    - Chooses JSON or plain formatter based on RECEIPTRELAY_JSON_LOGS
    - Prefer systemd's JournalHandler, fallback to StreamHandler
    - Adds RequestIdFilter so formatters can reference %(request_id)s
    - Ensures Flask app logger propagates to root (no separate handlers)

    Returns the configured root logger.
    """
    root = logging.getLogger()
    root.setLevel(level)

    # Avoid duplicate logs in dev reloads or repeated factory calls
    root.handlers = []

    formatter: logging.Formatter
    if _json_logs_enabled():
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter("[%(asctime)s] %(levelname)s %(request_id)s %(name)s: %(message)s")

    # Prefer systemd journal when available
    try:
        from systemd.journal import JournalHandler  # type: ignore

        handler: logging.Handler = JournalHandler(SYSLOG_IDENTIFIER="receipt-relay")
        handler.setFormatter(formatter)
    except Exception:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)

    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)

    flask_logger = logging.getLogger("flask.app")
    flask_logger.handlers = []
    flask_logger.propagate = True

    return root


def attach_event_hub(hub: "EventHub", logger_name: str = "receipt_relay") -> EventHubHandler:
    """
    Install (once) an EventHubHandler on the service logger and return it.
    """
    target = logging.getLogger(logger_name)
    for existing in target.handlers:
        if isinstance(existing, EventHubHandler) and existing.hub is hub:
            return existing
    # Drop handlers bound to hubs of previous app instances
    target.handlers = [h for h in target.handlers if not isinstance(h, EventHubHandler)]
    handler = EventHubHandler(hub)
    target.addHandler(handler)
    return handler


__all__ = ["EventHubHandler", "JsonFormatter", "RequestIdFilter", "attach_event_hub", "configure_logging"]
