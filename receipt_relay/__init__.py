"""
Receipt Relay package

This module provides an application factory with minimal wiring:
- Configures logging and forwards service logs to websocket clients
- Loads the AppConfig (file, environment, explicit overrides)
- Builds the printing services (backend, registry, job store, print service)
  and stores them in app.extensions["receipt_relay"]
- Enables CORS for the configured origins and logs every request
- Registers the API, jobs, events and health blueprints
- Optionally starts the background print workers
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Optional

from flask import Flask, g, request
from flask_cors import CORS

from receipt_relay.core.config import AppConfig, load_app_config
from receipt_relay.core.events import EventHub, Notifier
from receipt_relay.core.identity import resolve_identity
from receipt_relay.core.logging import attach_event_hub, configure_logging
from receipt_relay.printing.backends import PrinterBackend, create_backend
from receipt_relay.printing.jobs import JobStore
from receipt_relay.printing.raster import ImageCache
from receipt_relay.printing.registry import PrinterRegistry
from receipt_relay.printing.worker import PrintService
from receipt_relay.web import EXTENSION_KEY, RelayServices, api_bp, events_bp, health_bp, jobs_bp, sock

__version__ = "1.0.0"

_RESOLVE = object()


def _set_request_id() -> None:
    g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    g.request_started = time.perf_counter()


def _log_request(response):
    started = getattr(g, "request_started", None)
    duration_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
    logging.getLogger("receipt_relay.http").info(
        "Request: %s %s | Status: %d | Duration: %.1fms",
        request.method,
        request.path,
        response.status_code,
        duration_ms,
    )
    response.headers["X-Request-ID"] = getattr(g, "request_id", "-")
    return response


def build_services(
    config: AppConfig,
    backend: Optional[PrinterBackend] = None,
    identity: Any = _RESOLVE,
) -> RelayServices:
    """
    Wire the printing components for one app instance.

    Parameters:
    - backend: transport to use; chosen from config when None
    - identity: machine identity; resolved from config/OS when omitted,
      an explicit None means "unavailable"
    """
    if identity is _RESOLVE:
        identity = resolve_identity(config.machine_id)
    hub = EventHub()
    notifier = Notifier(hub)
    if backend is None:
        backend = create_backend(config)
    registry = PrinterRegistry(backend)
    store = JobStore(max_jobs=config.max_jobs)
    printer = PrintService(
        config=config,
        identity=identity,
        registry=registry,
        store=store,
        backend=backend,
        notifier=notifier,
        image_cache=ImageCache(config.image_cache_dir, timeout=config.image_timeout),
    )
    return RelayServices(
        config=config,
        identity=identity,
        hub=hub,
        notifier=notifier,
        backend=backend,
        registry=registry,
        store=store,
        printer=printer,
    )


def create_app(
    config_overrides: Optional[dict] = None,
    *,
    config: Optional[AppConfig] = None,
    backend: Optional[PrinterBackend] = None,
    identity: Any = _RESOLVE,
    register_worker: bool = True,
) -> Flask:
    """
    Application factory.

    Parameters:
    - config_overrides: AppConfig values layered over the config file and env
    - config: a ready AppConfig (skips file/env loading)
    - backend: printer transport (defaults to create_backend(config))
    - identity: machine identity override; None disables caller validation
    - register_worker: if True, starts the background print workers

    Returns:
    - Flask app instance
    """
    configure_logging()
    app_config = config or load_app_config(overrides=config_overrides)

    app = Flask("receipt_relay")
    app.config["MAX_CONTENT_LENGTH"] = 2 * 1024 * 1024
    # Strict slashes off for more forgiving routing
    app.url_map.strict_slashes = False

    services = build_services(app_config, backend=backend, identity=identity)
    app.extensions[EXTENSION_KEY] = services
    attach_event_hub(services.hub)

    CORS(app, origins=app_config.allowed_cors)
    sock.init_app(app)

    app.before_request(_set_request_id)
    app.after_request(_log_request)

    for bp in (api_bp, jobs_bp, events_bp, health_bp):
        app.register_blueprint(bp)
        app.logger.debug("Registered blueprint: %s", bp.name)

    services.registry.refresh()

    if register_worker:
        services.printer.ensure_workers()
        app.logger.info("Background workers ensured")

    app.logger.info("Receipt Relay app created (backend=%s)", services.backend.name)
    return app


__all__ = ["build_services", "create_app"]
