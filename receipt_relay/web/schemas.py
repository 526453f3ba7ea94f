from __future__ import annotations

"""
Pydantic schemas for the Receipt Relay HTTP API.

Request bodies use the POS clients' camelCase keys. The print request itself
(PrintRequest) lives next to the order model in receipt_relay.printing.order
so the print pipeline does not depend on the web layer; it is re-exported
here for the routes.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from receipt_relay.printing.order import PrintRequest

DEFAULT_NOTIFICATION_TITLE = "Test Notification"
DEFAULT_NOTIFICATION_MESSAGE = "This is a test notification from the backend."
PRINT_ACCEPTED_MESSAGE = "Print job submitted successfully. Processing in background."


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ValidateRequest(_ApiModel):
    """Identity check requested by a POS client."""

    machine_id: str = Field(default="", description="Identity token the client believes belongs to this machine")

    @field_validator("machine_id", mode="before")
    @classmethod
    def _null_id(cls, v):
        return "" if v is None else v


class NotificationRequest(_ApiModel):
    """Body of /api/test-notification; every field falls back to a default."""

    title: str = Field(default=DEFAULT_NOTIFICATION_TITLE, examples=["Printer Not Found"])
    message: str = Field(default=DEFAULT_NOTIFICATION_MESSAGE)
    icon: str = ""
    sound: bool = False

    @field_validator("title", "message", "icon", mode="before")
    @classmethod
    def _blank_to_default(cls, v, info):
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("sound", mode="before")
    @classmethod
    def _null_sound(cls, v):
        return False if v is None else v


class SamplePrintRequest(_ApiModel):
    """Sample bill print on a named printer."""

    printer_name: str = Field(min_length=1, description="Printer to print the sample bill on")
    printer_size: str = Field(default="80mm", examples=["58mm", "80mm"])

    @field_validator("printer_name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("printerName required")
        return v

    @field_validator("printer_size")
    @classmethod
    def _size(cls, v: str) -> str:
        return (v or "80mm").strip().lower()


class PrintResponse(_ApiModel):
    """Immediate acknowledgement of a print submission."""

    success: bool
    job_id: str = Field(description="Identifier to look the job up in /api/jobs")
    message: Optional[str] = None
    error: Optional[str] = None


class ValidateResponse(_ApiModel):
    valid: bool
    machine_id: str


class IdentifierResponse(_ApiModel):
    identifier: str


class PrinterOut(_ApiModel):
    name: str
    unique_id: str
    windows_id: str
    status: str


class PrintersResponse(_ApiModel):
    printers: List[PrinterOut] = Field(default_factory=list)
    default: Optional[str] = None


class MessageResponse(_ApiModel):
    success: bool = True
    message: str


__all__ = [
    "DEFAULT_NOTIFICATION_MESSAGE",
    "DEFAULT_NOTIFICATION_TITLE",
    "IdentifierResponse",
    "MessageResponse",
    "NotificationRequest",
    "PRINT_ACCEPTED_MESSAGE",
    "PrintRequest",
    "PrintResponse",
    "PrinterOut",
    "PrintersResponse",
    "SamplePrintRequest",
    "ValidateRequest",
    "ValidateResponse",
]
