from __future__ import annotations

"""
Health endpoint for Receipt Relay.

This blueprint exposes `/healthz`, reporting:
- Overall status ("ok" or "degraded")
- Background worker status and queue size (via PrintService.status)
- Printer count, default printer and backend in use
- Whether a machine identity is available
- Number of connected event clients
"""

from typing import Any, Dict

from flask import Blueprint

from .context import get_services

health_bp = Blueprint("health", __name__)


@health_bp.get("/healthz")
def healthz():
    svc = get_services()
    status: Dict[str, Any] = {"status": "ok"}
    # Worker/queue status
    status.update(svc.printer.status())

    printers = svc.registry.list()
    default = svc.registry.default
    status["backend"] = svc.backend.name
    status["printer_count"] = len(printers)
    status["default_printer"] = default.name if default else None
    status["identity_ok"] = svc.identity is not None
    status["event_clients"] = svc.hub.client_count()
    status["jobs"] = len(svc.store)

    if not printers:
        status["status"] = "degraded"
        status["reason"] = "no_printers"
    elif not status["workers_alive"] and status["workers_started"]:
        status["status"] = "degraded"
        status["reason"] = "workers_dead"
    elif not status["identity_ok"]:
        status["status"] = "degraded"
        status["reason"] = "no_identity"

    return status, 200
