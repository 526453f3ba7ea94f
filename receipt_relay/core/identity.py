"""
Local machine identity lookup.

The identity is resolved once at startup and passed to the print service;
callers must present the same value in their print requests.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from receipt_relay.core.errors import IdentityUnavailableError

logger = logging.getLogger(__name__)

MACHINE_ID_FILES: Sequence[str] = ("/etc/machine-id", "/var/lib/dbus/machine-id")


def _read_first(paths: Sequence[str]) -> Optional[str]:
    for pth in paths:
        try:
            value = Path(pth).read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if value:
            return value
    return None


def _read_windows_guid() -> Optional[str]:
    import winreg  # type: ignore

    try:
        with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, r"SOFTWARE\Microsoft\Cryptography") as key:
            value, _ = winreg.QueryValueEx(key, "MachineGuid")
    except OSError:
        return None
    return str(value).strip() or None


def get_machine_id(override: Optional[str] = None, paths: Sequence[str] = MACHINE_ID_FILES) -> str:
    """
    Return this machine's identifier.

    Resolution order: explicit override (config), machine-id files, then the
    Windows MachineGuid registry value.

    Raises:
        IdentityUnavailableError if nothing yields a value.
    """
    if override and override.strip():
        return override.strip()
    value = _read_first(paths)
    if value is None and sys.platform == "win32":
        value = _read_windows_guid()
    if value is None:
        raise IdentityUnavailableError("failed to read machine-id")
    return value


def resolve_identity(override: Optional[str] = None) -> Optional[str]:
    """
    Startup helper: like get_machine_id() but returns None (and logs) when
    the identity is unavailable.
    """
    try:
        return get_machine_id(override)
    except IdentityUnavailableError as e:
        logger.warning("Machine identity unavailable: %s", e)
        return None


__all__ = ["MACHINE_ID_FILES", "get_machine_id", "resolve_identity"]
