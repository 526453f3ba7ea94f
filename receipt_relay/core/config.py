"""
Config utilities for Receipt Relay.

Responsibilities:
- Resolve the config path with environment and XDG support
- Provide JSON load/save helpers for the service's config
- Validate the loaded JSON into an AppConfig value that is built once at
  startup and handed to the printing components
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


def default_config_path() -> str:
    """
    Resolve the default config path using:
    1) $XDG_CONFIG_HOME/receipt-relay/config.json
    2) ~/.config/receipt-relay/config.json
    """
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return str(Path(xdg) / "receipt-relay" / "config.json")
    return str(Path.home() / ".config" / "receipt-relay" / "config.json")


def default_image_cache_dir() -> str:
    return str(Path(tempfile.gettempdir()) / "receipt-relay" / "images")


def get_config_path() -> str:
    """
    Return the config path honoring RECEIPTRELAY_CONFIG_PATH override.
    """
    return os.environ.get("RECEIPTRELAY_CONFIG_PATH", default_config_path())


def ensure_dir(path: str) -> str:
    """
    Ensure a directory exists and return the path.
    """
    Path(path).mkdir(parents=True, exist_ok=True)
    return path


class DeviceConfig(BaseModel):
    """A printer reachable directly over USB, TCP or serial (ESC/POS backend)."""

    name: str = Field(min_length=1)
    type: str = "network"
    usb_vendor_id: str = "0x04b8"
    usb_product_id: str = "0x0e28"
    network_ip: str = ""
    network_port: int = 9100
    serial_port: str = ""
    serial_baudrate: int = 19200
    profile: Optional[str] = None

    @field_validator("type")
    @classmethod
    def _type_norm(cls, v: str) -> str:
        v = (v or "network").strip().lower()
        if v not in {"usb", "network", "serial"}:
            raise ValueError(f"unsupported device type: {v}")
        return v


class AppConfig(BaseModel):
    """Runtime settings. Unknown keys in the JSON file are ignored."""

    host: str = "127.0.0.1"
    http_port: int = Field(default=9100, ge=1, le=65535)
    allowed_cors: List[str] = Field(default_factory=lambda: ["*"])
    printer_backend: str = "auto"
    devices: List[DeviceConfig] = Field(default_factory=list)
    image_cache_dir: str = Field(default_factory=default_image_cache_dir)
    image_max_width: int = Field(default=384, ge=8)
    image_timeout: float = Field(default=10.0, gt=0)
    text_encoding: str = "utf-8"
    worker_threads: int = Field(default=2, ge=1, le=32)
    max_jobs: int = Field(default=0, ge=0)
    machine_id: Optional[str] = None

    @field_validator("printer_backend")
    @classmethod
    def _backend_norm(cls, v: str) -> str:
        v = (v or "auto").strip().lower()
        if v not in {"auto", "cups", "win32", "escpos"}:
            raise ValueError(f"unsupported printer_backend: {v}")
        return v


def load_config(path: Optional[str] = None) -> Optional[dict[str, Any]]:
    """
    Load the JSON config if it exists; return None if missing.

    Raises:
        json.JSONDecodeError if the file exists but contains invalid JSON.
        OSError for I/O errors other than missing file.
    """
    cfg_path = Path(path or get_config_path())
    if not cfg_path.exists():
        return None
    with cfg_path.open("r", encoding="utf-8") as f:
        return json.load(f)


def save_config(data: dict[str, Any], path: Optional[str] = None) -> None:
    """
    Save the JSON config, creating parent directories as needed.

    Writes atomically by using a temporary file and os.replace().
    Raises OSError on I/O failures.
    """
    cfg_path = Path(path or get_config_path())
    cfg_dir = cfg_path.parent
    cfg_dir.mkdir(parents=True, exist_ok=True)

    tmp_path = cfg_path.with_suffix(cfg_path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_path, cfg_path)


def load_app_config(path: Optional[str] = None, overrides: Optional[dict[str, Any]] = None) -> AppConfig:
    """
    Build the AppConfig from the JSON file (if any), environment overrides
    and explicit overrides, in that order of increasing precedence.
    """
    data: dict[str, Any] = dict(load_config(path) or {})

    port = os.environ.get("RECEIPTRELAY_PORT")
    if port:
        data["http_port"] = int(port)
    host = os.environ.get("RECEIPTRELAY_HOST")
    if host:
        data["host"] = host

    if overrides:
        data.update(overrides)
    return AppConfig.model_validate(data)


__all__ = [
    "AppConfig",
    "DeviceConfig",
    "default_config_path",
    "default_image_cache_dir",
    "ensure_dir",
    "get_config_path",
    "load_app_config",
    "load_config",
    "save_config",
]
