"""
Core utilities for Receipt Relay.

This package groups non-Flask helpers used across the app:
- config: config path resolution, JSON load/save, AppConfig validation
- logging: request-id aware logging filters/formatters and root logger config
- errors: the error taxonomy shared by web and printing code
- identity: local machine identity lookup
- events: websocket event fan-out and user notifications
"""

from .config import (
    AppConfig,
    DeviceConfig,
    default_config_path,
    ensure_dir,
    get_config_path,
    load_app_config,
    load_config,
    save_config,
)
from .errors import (
    AuthorizationError,
    DecodeError,
    IdentityUnavailableError,
    PrinterNotFoundError,
    ReceiptRelayError,
    TransportError,
)
from .events import EventHub, Notifier
from .identity import get_machine_id, resolve_identity
from .logging import (
    EventHubHandler,
    JsonFormatter,
    RequestIdFilter,
    attach_event_hub,
    configure_logging,
)

__all__ = [
    # config
    "AppConfig",
    "DeviceConfig",
    "default_config_path",
    "ensure_dir",
    "get_config_path",
    "load_app_config",
    "load_config",
    "save_config",
    # errors
    "AuthorizationError",
    "DecodeError",
    "IdentityUnavailableError",
    "PrinterNotFoundError",
    "ReceiptRelayError",
    "TransportError",
    # events
    "EventHub",
    "Notifier",
    # identity
    "get_machine_id",
    "resolve_identity",
    # logging
    "EventHubHandler",
    "JsonFormatter",
    "RequestIdFilter",
    "attach_event_hub",
    "configure_logging",
]
