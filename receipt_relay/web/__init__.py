"""
Web module for Receipt Relay.

Exposes blueprints for:
- JSON API (print, printers, identity, notifications): api_bp
- Job history endpoints: jobs_bp
- Websocket event channel: events_bp (routes registered through sock)
- Health endpoint: health_bp
"""

from .api import api_bp
from .context import EXTENSION_KEY, RelayServices, get_services
from .events import events_bp, sock
from .health import health_bp
from .jobs import jobs_bp

__all__ = ["EXTENSION_KEY", "RelayServices", "api_bp", "events_bp", "get_services", "health_bp", "jobs_bp", "sock"]
