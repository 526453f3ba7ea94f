"""
Per-app service bundle shared by the blueprints.

create_app() builds one RelayServices and stores it in
``app.extensions["receipt_relay"]``; routes fetch it with get_services().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app

from receipt_relay.core.config import AppConfig
from receipt_relay.core.events import EventHub, Notifier
from receipt_relay.printing.backends import PrinterBackend
from receipt_relay.printing.jobs import JobStore
from receipt_relay.printing.registry import PrinterRegistry
from receipt_relay.printing.worker import PrintService

EXTENSION_KEY = "receipt_relay"


@dataclass
class RelayServices:
    config: AppConfig
    identity: Optional[str]
    hub: EventHub
    notifier: Notifier
    backend: PrinterBackend
    registry: PrinterRegistry
    store: JobStore
    printer: PrintService


def get_services() -> RelayServices:
    return current_app.extensions[EXTENSION_KEY]


__all__ = ["EXTENSION_KEY", "RelayServices", "get_services"]
