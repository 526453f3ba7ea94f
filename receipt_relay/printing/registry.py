"""
Cached printer list with default-printer fallback.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from receipt_relay.core.errors import PrinterNotFoundError
from receipt_relay.printing.backends import PrinterBackend, PrinterInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    printer: PrinterInfo
    used_default: bool = False


class PrinterRegistry:
    """
    Printer map keyed by name, refreshed from the backend on demand.

    refresh() swaps the whole map in one assignment under the lock, so
    readers see either the previous or the new enumeration, never a mix.
    Refreshes are serialized, so the map always comes from the enumeration
    that started last.
    The default printer is the first entry of the last successful refresh.
    """

    def __init__(self, backend: PrinterBackend) -> None:
        self.backend = backend
        self._lock = threading.RLock()
        self._refresh_lock = threading.Lock()
        self._printers: Dict[str, PrinterInfo] = {}
        self._default: Optional[str] = None

    def refresh(self) -> bool:
        """
        Re-enumerate printers. Returns False (keeping the previous map) when
        enumeration raises.
        """
        with self._refresh_lock:
            try:
                found = list(self.backend.enumerate())
            except Exception as e:
                logger.warning("Failed to refresh printers: %s", e)
                return False

            printers = {p.name: p for p in found}
            default = found[0].name if found else None
            with self._lock:
                self._printers = printers
                self._default = default
        logger.info("Printers refreshed. Found %d printers. Default: %s", len(printers), default or "-")
        return True

    def get(self, name: str) -> Optional[PrinterInfo]:
        with self._lock:
            return self._printers.get(name)

    def list(self) -> List[PrinterInfo]:
        with self._lock:
            return list(self._printers.values())

    @property
    def default(self) -> Optional[PrinterInfo]:
        with self._lock:
            if self._default is None:
                return None
            return self._printers.get(self._default)

    def resolve(self, name: str) -> Resolution:
        """
        Exact cached match, else refresh and retry, else the default printer.

        Raises:
            PrinterNotFoundError when all three fail.
        """
        found = self.get(name)
        if found is not None:
            return Resolution(found)

        logger.info("Printer '%s' not found in cache. Refreshing printer list...", name)
        self.refresh()
        found = self.get(name)
        if found is not None:
            return Resolution(found)

        fallback = self.default
        if fallback is not None:
            logger.info("Printer '%s' still not found. Falling back to default: '%s'", name, fallback.name)
            return Resolution(fallback, used_default=True)

        raise PrinterNotFoundError(name)


__all__ = ["PrinterRegistry", "Resolution"]
