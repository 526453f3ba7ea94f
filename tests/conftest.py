# Ensure the repository root is on sys.path so `receipt_relay` can be imported in tests.

import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest


def _ensure_repo_root_on_syspath() -> None:
    # This file lives at: <repo_root>/tests/conftest.py
    # We want to add <repo_root> to sys.path (if not already present).
    here = Path(__file__).resolve()
    repo_root = here.parent.parent
    repo_str = str(repo_root)
    if repo_str not in sys.path:
        sys.path.insert(0, repo_str)


_ensure_repo_root_on_syspath()

from receipt_relay.core.config import AppConfig  # noqa: E402
from receipt_relay.core.errors import TransportError  # noqa: E402
from receipt_relay.printing.backends import PrinterBackend, PrinterInfo  # noqa: E402

MACHINE_ID = "test-machine-id"


class FakeBackend(PrinterBackend):
    """
    In-memory transport: enumerates a fixed printer list and records writes.
    """

    name = "fake"

    def __init__(self, printers: Optional[List[PrinterInfo]] = None, fail_with: Optional[str] = None) -> None:
        self.printers: List[PrinterInfo] = list(printers or [])
        self.fail_with = fail_with
        self.enumerate_calls = 0
        self.enumerate_error: Optional[Exception] = None
        self.writes: List[Tuple[str, bytes]] = []
        self.cleared: List[str] = []
        self._lock = threading.Lock()

    def enumerate(self) -> List[PrinterInfo]:
        self.enumerate_calls += 1
        if self.enumerate_error is not None:
            raise self.enumerate_error
        return list(self.printers)

    def write_raw(self, printer_name: str, data: bytes) -> None:
        if self.fail_with:
            raise TransportError(self.fail_with)
        with self._lock:
            self.writes.append((printer_name, data))

    def clear_queue(self, printer_name: str) -> None:
        self.cleared.append(printer_name)


class RecordingHub:
    """EventHub stand-in that keeps broadcast events."""

    def __init__(self) -> None:
        self.events: List[Dict] = []

    def broadcast(self, event: Dict) -> int:
        self.events.append(event)
        return 1


def printer(name: str, status: str = "Ready") -> PrinterInfo:
    return PrinterInfo(name=name, unique_id=name, windows_id=name, status=status)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend([printer("HP-1"), printer("Kitchen", "Offline")])


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(image_cache_dir=str(tmp_path / "images"), worker_threads=1)
