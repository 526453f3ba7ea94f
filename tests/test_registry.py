import threading
import time

import pytest

from conftest import FakeBackend, printer
from receipt_relay.core.errors import PrinterNotFoundError
from receipt_relay.printing.registry import PrinterRegistry


def test_refresh_sets_default_to_first_entry():
    reg = PrinterRegistry(FakeBackend([printer("B"), printer("A")]))
    assert reg.default is None
    assert reg.refresh() is True
    assert reg.default.name == "B"
    assert [p.name for p in reg.list()] == ["B", "A"]


def test_exact_match_does_not_refresh():
    backend = FakeBackend([printer("HP-1")])
    reg = PrinterRegistry(backend)
    reg.refresh()
    calls = backend.enumerate_calls

    res = reg.resolve("HP-1")
    assert res.printer.name == "HP-1"
    assert res.used_default is False
    assert backend.enumerate_calls == calls


def test_miss_refreshes_then_matches():
    backend = FakeBackend([printer("Old")])
    reg = PrinterRegistry(backend)
    reg.refresh()
    backend.printers = [printer("Old"), printer("New")]

    res = reg.resolve("New")
    assert res.printer.name == "New"
    assert res.used_default is False
    assert backend.enumerate_calls == 2


def test_second_miss_falls_back_to_default():
    reg = PrinterRegistry(FakeBackend([printer("Front"), printer("Back")]))
    reg.refresh()
    res = reg.resolve("Missing")
    assert res.printer.name == "Front"
    assert res.used_default is True


def test_no_printers_raises():
    reg = PrinterRegistry(FakeBackend([]))
    reg.refresh()
    with pytest.raises(PrinterNotFoundError) as exc:
        reg.resolve("HP-1")
    assert str(exc.value) == "Printer 'HP-1' not found and no default printer available."
    assert exc.value.printer_name == "HP-1"


def test_failed_refresh_keeps_previous_map():
    backend = FakeBackend([printer("HP-1")])
    reg = PrinterRegistry(backend)
    reg.refresh()

    backend.enumerate_error = OSError("spooler down")
    assert reg.refresh() is False
    assert reg.get("HP-1") is not None
    assert reg.default.name == "HP-1"


def test_empty_refresh_clears_default():
    backend = FakeBackend([printer("HP-1")])
    reg = PrinterRegistry(backend)
    reg.refresh()
    backend.printers = []
    assert reg.refresh() is True
    assert reg.default is None
    assert reg.list() == []


def test_concurrent_readers_see_whole_snapshots():
    a = [printer(f"A{i}") for i in range(20)]
    b = [printer(f"B{i}") for i in range(20)]
    backend = FakeBackend(a)
    reg = PrinterRegistry(backend)
    reg.refresh()
    errors = []
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            names = {p.name[0] for p in reg.list()}
            if len(names) > 1:
                errors.append(names)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for i in range(200):
        backend.printers = b if i % 2 == 0 else a
        reg.refresh()
    stop.set()
    for t in threads:
        t.join()
    assert errors == []


class _GatedBackend(FakeBackend):
    """Returns one printer list per call; the first call blocks until released."""

    def __init__(self, results):
        super().__init__()
        self.results = list(results)
        self.entered = threading.Event()
        self.gate = threading.Event()

    def enumerate(self):
        self.enumerate_calls += 1
        result = self.results.pop(0)
        if self.enumerate_calls == 1:
            self.entered.set()
            self.gate.wait(5)
        return result


def test_overlapping_refreshes_keep_the_latest_enumeration():
    backend = _GatedBackend([[printer("Old")], [printer("New")]])
    reg = PrinterRegistry(backend)

    first = threading.Thread(target=reg.refresh)
    first.start()
    assert backend.entered.wait(5)

    second = threading.Thread(target=reg.refresh)
    second.start()
    time.sleep(0.05)
    # The second refresh waits for the first to commit
    assert backend.enumerate_calls == 1

    backend.gate.set()
    first.join(5)
    second.join(5)
    assert reg.default.name == "New"
    assert [p.name for p in reg.list()] == ["New"]
