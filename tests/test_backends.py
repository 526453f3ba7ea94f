import subprocess
from typing import List

import pytest

import receipt_relay.printing.backends as backends
from receipt_relay.core.config import AppConfig, DeviceConfig
from receipt_relay.core.errors import PrinterNotFoundError, TransportError
from receipt_relay.printing.backends import (
    CupsBackend,
    EscposDeviceBackend,
    PrinterInfo,
    create_backend,
    parse_lpstat_status,
    win_status_text,
)


def _proc(args, returncode=0, stdout=b""):
    return subprocess.CompletedProcess(args, returncode, stdout=stdout)


def test_printer_info_to_dict():
    info = PrinterInfo(name="HP-1", unique_id="srv\\HP-1", windows_id="USB001", status="Ready")
    assert info.to_dict() == {"name": "HP-1", "uniqueId": "srv\\HP-1", "windowsId": "USB001", "status": "Ready"}


@pytest.mark.parametrize(
    "output,status",
    [
        ("printer HP-1 is idle.  enabled since Mon", "Ready"),
        ("printer HP-1 now printing HP-1-12.", "Printing"),
        ("printer HP-1 disabled since Mon -", "Paused"),
        ("", "Unknown"),
    ],
)
def test_lpstat_status(output, status):
    assert parse_lpstat_status(output) == status


def test_cups_enumerate(monkeypatch):
    calls: List[List[str]] = []

    def _run(self, args, data=None):
        calls.append(list(args))
        if args == ["lpstat", "-e"]:
            return _proc(args, stdout=b"HP-1\nKitchen\n\n")
        return _proc(args, stdout=f"printer {args[-1]} is idle.".encode())

    monkeypatch.setattr(CupsBackend, "_run", _run)
    printers = CupsBackend().enumerate()
    assert [p.name for p in printers] == ["HP-1", "Kitchen"]
    assert all(p.status == "Ready" for p in printers)
    assert calls[1] == ["lpstat", "-p", "HP-1"]


def test_cups_enumerate_without_lpstat(monkeypatch):
    def _run(self, args, data=None):
        raise FileNotFoundError("lpstat")

    monkeypatch.setattr(CupsBackend, "_run", _run)
    assert CupsBackend().enumerate() == []


def test_cups_write_raw(monkeypatch):
    seen = {}

    def _run(args, input=None, **kw):
        seen["args"] = args
        seen["input"] = input
        seen["timeout"] = kw.get("timeout")
        return _proc(args, stdout=b"request id is HP-1-7 (1 file(s))")

    monkeypatch.setattr(backends.subprocess, "run", _run)
    CupsBackend().write_raw("HP-1", b"\x1b@")
    assert seen == {"args": ["lp", "-d", "HP-1", "-o", "raw"], "input": b"\x1b@", "timeout": None}


def test_cups_write_raw_failure(monkeypatch):
    monkeypatch.setattr(backends.subprocess, "run", lambda args, **kw: _proc(args, 1, b"lp: The printer does not exist."))
    with pytest.raises(TransportError) as exc:
        CupsBackend().write_raw("HP-1", b"x")
    assert "exit status 1" in str(exc.value)


def test_cups_clear_queue_falls_back_to_lprm(monkeypatch):
    calls = []

    def _run(self, args, data=None):
        calls.append(list(args))
        return _proc(args, 1 if args[0] == "cancel" else 0)

    monkeypatch.setattr(CupsBackend, "_run", _run)
    CupsBackend().clear_queue("HP-1")
    assert calls == [["cancel", "-a", "HP-1"], ["lprm", "-P", "HP-1", "-"]]


def test_win_status_text():
    assert win_status_text(0) == "Ready"
    assert win_status_text(0x80) == "Offline"
    assert win_status_text(0x10) == "Paper Out"
    assert win_status_text(0, attributes=0x400) == "Offline"
    assert win_status_text(0x1000) == "Not Available"


class _FakeDevice:
    def __init__(self, fail_open=False):
        self.fail_open = fail_open
        self.raw = []
        self.closed = False

    def open(self):
        if self.fail_open:
            raise OSError("no route to host")

    def _raw(self, data):
        self.raw.append(data)

    def close(self):
        self.closed = True


def test_escpos_device_backend(monkeypatch):
    devices = [
        DeviceConfig(name="Bar", type="network", network_ip="10.0.0.5"),
        DeviceConfig(name="Patio", type="network", network_ip="10.0.0.6"),
    ]
    made = {}

    def _connect(device):
        dev = _FakeDevice(fail_open=device.name == "Patio")
        made[device.name] = dev
        return dev

    monkeypatch.setattr(backends, "connect_device", _connect)
    backend = EscposDeviceBackend(devices)

    statuses = {p.name: (p.status, p.unique_id) for p in backend.enumerate()}
    assert statuses == {"Bar": ("Ready", "tcp:10.0.0.5:9100"), "Patio": ("Offline", "tcp:10.0.0.6:9100")}

    backend.write_raw("Bar", b"\x1b@")
    assert made["Bar"].raw == [b"\x1b@"]
    assert made["Bar"].closed

    with pytest.raises(TransportError):
        backend.write_raw("Patio", b"x")
    with pytest.raises(PrinterNotFoundError):
        backend.write_raw("Nope", b"x")


def test_create_backend_selection(monkeypatch):
    assert isinstance(create_backend(AppConfig(printer_backend="cups")), CupsBackend)
    assert isinstance(create_backend(AppConfig(printer_backend="escpos")), EscposDeviceBackend)

    monkeypatch.setattr(backends.sys, "platform", "linux")
    assert isinstance(create_backend(AppConfig()), CupsBackend)
