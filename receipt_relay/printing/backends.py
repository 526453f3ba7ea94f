"""
Printer transport backends.

A backend can enumerate printers and write raw bytes to one of them. The
print pipeline only talks to the PrinterBackend interface; create_backend()
picks the implementation once, from config.

- CupsBackend: lpstat / lp -o raw / cancel (Linux, macOS)
- Win32Backend: the Windows spooler through pywin32 in RAW mode
- EscposDeviceBackend: printers declared in config, reached directly over
  USB, TCP or serial with python-escpos
"""

from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from receipt_relay.core.config import AppConfig, DeviceConfig
from receipt_relay.core.errors import PrinterNotFoundError, TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrinterInfo:
    name: str
    unique_id: str
    windows_id: str
    status: str

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        return {"name": d["name"], "uniqueId": d["unique_id"], "windowsId": d["windows_id"], "status": d["status"]}


class PrinterBackend:
    """
    Transport interface. Implementations raise TransportError from
    write_raw()/clear_queue() when the underlying call fails.
    """

    name = "base"

    def enumerate(self) -> List[PrinterInfo]:
        raise NotImplementedError

    def write_raw(self, printer_name: str, data: bytes) -> None:
        raise NotImplementedError

    def clear_queue(self, printer_name: str) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# CUPS
# ---------------------------------------------------------------------------


def parse_lpstat_status(output: str) -> str:
    if "is idle" in output:
        return "Ready"
    if "printing" in output:
        return "Printing"
    if "disabled" in output:
        return "Paused"
    return "Unknown"


class CupsBackend(PrinterBackend):
    name = "cups"

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout

    def _run(self, args: Sequence[str], data: Optional[bytes] = None) -> subprocess.CompletedProcess:
        return subprocess.run(
            list(args),
            input=data,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=self.timeout,
            check=False,
        )

    def enumerate(self) -> List[PrinterInfo]:
        try:
            proc = self._run(["lpstat", "-e"])
        except (OSError, subprocess.SubprocessError) as e:
            # No CUPS client tools, or CUPS not running: no printers
            logger.info("lpstat unavailable: %s", e)
            return []
        if proc.returncode != 0:
            return []

        printers: List[PrinterInfo] = []
        for line in proc.stdout.decode("utf-8", errors="replace").splitlines():
            name = line.strip()
            if not name:
                continue
            try:
                status_out = self._run(["lpstat", "-p", name]).stdout.decode("utf-8", errors="replace")
            except (OSError, subprocess.SubprocessError):
                status_out = ""
            printers.append(PrinterInfo(name=name, unique_id=name, windows_id=name, status=parse_lpstat_status(status_out)))
        return printers

    def write_raw(self, printer_name: str, data: bytes) -> None:
        logger.info("[Printer] Printing %d bytes to '%s' via lp", len(data), printer_name)
        # No timeout here: spooling is the transport's own business
        try:
            proc = subprocess.run(
                ["lp", "-d", printer_name, "-o", "raw"],
                input=data,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as e:
            raise TransportError(f"failed to print: {e}") from e
        output = proc.stdout.decode("utf-8", errors="replace").strip()
        if proc.returncode != 0:
            raise TransportError(f"failed to print: exit status {proc.returncode}, output: {output}")
        logger.info("[Printer] Successfully sent job to '%s'. Output: %s", printer_name, output)

    def clear_queue(self, printer_name: str) -> None:
        logger.info("[Printer] Clearing queue for '%s'", printer_name)
        try:
            proc = self._run(["cancel", "-a", printer_name])
            if proc.returncode == 0:
                return
            first = proc.stdout.decode("utf-8", errors="replace").strip()
            proc = self._run(["lprm", "-P", printer_name, "-"])
        except (OSError, subprocess.SubprocessError) as e:
            raise TransportError(f"failed to clear queue: {e}") from e
        if proc.returncode != 0:
            second = proc.stdout.decode("utf-8", errors="replace").strip()
            raise TransportError(f"failed to clear queue: {first} / {second}")


# ---------------------------------------------------------------------------
# Windows spooler
# ---------------------------------------------------------------------------

_WIN_STATUS = (
    (0x00000080, "Offline"),
    (0x00000008, "Paper Jam"),
    (0x00000010, "Paper Out"),
    (0x00000040, "Paper Problem"),
    (0x00000002, "Error"),
    (0x00000001, "Paused"),
    (0x00400000, "Door Open"),
    (0x00000400, "Printing"),
    (0x00001000, "Not Available"),
)


def win_status_text(status: int, attributes: int = 0) -> str:
    # PRINTER_ATTRIBUTE_WORK_OFFLINE
    if attributes & 0x00000400:
        return "Offline"
    for flag, text in _WIN_STATUS:
        if status & flag:
            return text
    return "Ready"


class Win32Backend(PrinterBackend):
    name = "win32"

    def __init__(self) -> None:
        import win32print  # type: ignore

        self._win32print = win32print

    def enumerate(self) -> List[PrinterInfo]:
        wp = self._win32print
        flags = wp.PRINTER_ENUM_LOCAL | wp.PRINTER_ENUM_CONNECTIONS
        printers: List[PrinterInfo] = []
        for entry in wp.EnumPrinters(flags, None, 2):
            name = entry["pPrinterName"]
            server = entry.get("pServerName")
            printers.append(
                PrinterInfo(
                    name=name,
                    unique_id=f"{server}\\{name}" if server else name,
                    windows_id=entry.get("pPortName") or name,
                    status=win_status_text(int(entry.get("Status", 0)), int(entry.get("Attributes", 0))),
                )
            )
        return printers

    def write_raw(self, printer_name: str, data: bytes) -> None:
        wp = self._win32print
        logger.info("[Printer] Printing %d bytes to '%s' via spooler", len(data), printer_name)
        try:
            handle = wp.OpenPrinter(printer_name)
        except Exception as e:
            raise TransportError(f"failed to open printer: {e}") from e
        try:
            wp.StartDocPrinter(handle, 1, ("Receipt", None, "RAW"))
            try:
                wp.StartPagePrinter(handle)
                written = wp.WritePrinter(handle, data)
                wp.EndPagePrinter(handle)
            finally:
                wp.EndDocPrinter(handle)
        except Exception as e:
            raise TransportError(f"failed to print: {e}") from e
        finally:
            wp.ClosePrinter(handle)
        if written != len(data):
            raise TransportError(f"failed to print: wrote {written} of {len(data)} bytes")

    def clear_queue(self, printer_name: str) -> None:
        wp = self._win32print
        try:
            handle = wp.OpenPrinter(printer_name, {"DesiredAccess": wp.PRINTER_ALL_ACCESS})
        except Exception as e:
            raise TransportError(f"failed to open printer: {e}") from e
        try:
            wp.SetPrinter(handle, 0, None, wp.PRINTER_CONTROL_PURGE)
        except Exception as e:
            raise TransportError(f"failed to clear queue: {e}") from e
        finally:
            wp.ClosePrinter(handle)


# ---------------------------------------------------------------------------
# Direct ESC/POS devices
# ---------------------------------------------------------------------------


def connect_device(device: DeviceConfig):
    """
    Create and return a python-escpos printer instance for a configured device.
    """
    profile = device.profile or None
    if device.type == "usb":
        from escpos.printer import Usb

        vendor = int(str(device.usb_vendor_id), 16)
        product = int(str(device.usb_product_id), 16)
        if profile:
            return Usb(vendor, product, profile=profile)
        return Usb(vendor, product)
    if device.type == "network":
        from escpos.printer import Network

        if profile:
            return Network(device.network_ip, device.network_port, profile=profile)
        return Network(device.network_ip, device.network_port)
    if device.type == "serial":
        from escpos.printer import Serial

        if profile:
            return Serial(device.serial_port, baudrate=device.serial_baudrate, profile=profile)
        return Serial(device.serial_port, baudrate=device.serial_baudrate)
    raise TransportError(f"Unsupported printer type: {device.type}")


def _device_handle(device: DeviceConfig) -> str:
    if device.type == "usb":
        return f"usb:{device.usb_vendor_id}:{device.usb_product_id}"
    if device.type == "network":
        return f"tcp:{device.network_ip}:{device.network_port}"
    return f"serial:{device.serial_port}"


def _open(printer):
    # python-escpos 3 connects lazily
    if hasattr(printer, "open"):
        printer.open()
    return printer


def _close_quietly(printer) -> None:
    try:
        printer.close()
    except Exception:
        pass


class EscposDeviceBackend(PrinterBackend):
    name = "escpos"

    def __init__(self, devices: Sequence[DeviceConfig]) -> None:
        self.devices: Dict[str, DeviceConfig] = {d.name: d for d in devices}

    def _device_status(self, device: DeviceConfig) -> str:
        try:
            p = _open(connect_device(device))
        except Exception as e:
            logger.debug("Device %s unreachable: %s", device.name, e)
            return "Offline"
        _close_quietly(p)
        return "Ready"

    def enumerate(self) -> List[PrinterInfo]:
        return [
            PrinterInfo(name=d.name, unique_id=_device_handle(d), windows_id=_device_handle(d), status=self._device_status(d))
            for d in self.devices.values()
        ]

    def write_raw(self, printer_name: str, data: bytes) -> None:
        device = self.devices.get(printer_name)
        if device is None:
            raise PrinterNotFoundError(printer_name)
        logger.info("[Printer] Printing %d bytes to '%s' (%s)", len(data), printer_name, _device_handle(device))
        try:
            p = _open(connect_device(device))
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"failed to connect: {e}") from e
        try:
            p._raw(data)
        except Exception as e:
            raise TransportError(f"failed to print: {e}") from e
        finally:
            _close_quietly(p)

    def clear_queue(self, printer_name: str) -> None:
        # Direct devices have no spool queue
        if printer_name not in self.devices:
            raise PrinterNotFoundError(printer_name)


def create_backend(config: AppConfig) -> PrinterBackend:
    kind = config.printer_backend
    if kind == "auto":
        kind = "win32" if sys.platform == "win32" else "cups"
    logger.info("Using printer backend: %s", kind)
    if kind == "win32":
        return Win32Backend()
    if kind == "escpos":
        return EscposDeviceBackend(config.devices)
    return CupsBackend()


__all__ = [
    "CupsBackend",
    "EscposDeviceBackend",
    "PrinterBackend",
    "PrinterInfo",
    "Win32Backend",
    "connect_device",
    "create_backend",
    "parse_lpstat_status",
    "win_status_text",
]
