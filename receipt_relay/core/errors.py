"""
Error taxonomy shared by the web layer and the print pipeline.
"""

from __future__ import annotations


class ReceiptRelayError(Exception):
    """Base class for errors raised by Receipt Relay."""

    status_code = 500


class DecodeError(ReceiptRelayError):
    """The request body could not be decoded into a print request."""

    status_code = 400


class AuthorizationError(ReceiptRelayError):
    """The caller's machine identity does not match this machine."""

    status_code = 401


class PrinterNotFoundError(ReceiptRelayError):
    """No exact, refreshed or default printer could be resolved."""

    status_code = 400

    def __init__(self, printer_name: str) -> None:
        self.printer_name = printer_name
        super().__init__(f"Printer '{printer_name}' not found and no default printer available.")


class TransportError(ReceiptRelayError):
    """The spooler/device rejected the bytes or accepted fewer than requested."""

    status_code = 502


class IdentityUnavailableError(ReceiptRelayError):
    """The local machine identity could not be determined."""

    status_code = 500


__all__ = [
    "AuthorizationError",
    "DecodeError",
    "IdentityUnavailableError",
    "PrinterNotFoundError",
    "ReceiptRelayError",
    "TransportError",
]
