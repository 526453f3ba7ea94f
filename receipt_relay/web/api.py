from __future__ import annotations

"""
JSON API for Receipt Relay.

Endpoints:
- POST /api/print                         : Submit a print job (async). 200 + jobId
- GET  /api/printers                      : Cached printer list (?refresh=1 re-enumerates)
- POST /api/printers/<name>/clear-queue   : Purge a printer's spool queue
- POST /api/validate                      : Compare a machine id with this machine's
- GET  /api/identifier                    : This machine's identity
- POST /api/test-notification             : Fire a user notification
- POST /api/test-print                    : Queue the sample bill on a printer

Payload shape (POST /api/print):
{
  "machineId": str,
  "printerName": str,
  "printerSize": "58mm|80mm",
  "receiptType": "bill|kot",
  "orderData": {"invoiceNo": str|number, "items": [...], "storeInfo": {...}, "displayOptions": {...}, ...}
}
"""

from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from receipt_relay.core.errors import (
    AuthorizationError,
    DecodeError,
    IdentityUnavailableError,
    ReceiptRelayError,
)
from receipt_relay.printing.jobs import JobStatus
from . import schemas
from .context import get_services

api_bp = Blueprint("api", __name__, url_prefix="/api")


def _json_error(msg: str, code: int = 400):
    return jsonify({"error": msg}), code


def _validation_message(e: ValidationError) -> str:
    # Return a concise error message
    try:
        first_err = e.errors()[0]
        loc = ".".join(str(part) for part in first_err.get("loc", ()))
        msg = first_err.get("msg") or str(e)
        return f"{loc}: {msg}" if loc else msg
    except Exception:
        return str(e)


def _json_body(required: bool = True) -> Optional[Dict[str, Any]]:
    """
    Parse the request body as a JSON object regardless of Content-Type.

    Raises:
        DecodeError when required and the body is not a JSON object.
    """
    data = request.get_json(force=True, silent=True)
    if isinstance(data, dict):
        return data
    if required:
        raise DecodeError("Invalid request body")
    return None


@api_bp.errorhandler(ReceiptRelayError)
def _relay_error(e: ReceiptRelayError):
    return _json_error(str(e), e.status_code)


@api_bp.post("/print")
def submit_print():
    """
    Accept a print submission, resolve its printer, and queue it.

    Returns 200 with the job id once the job is recorded; the print itself
    happens after the response. A printer that cannot be resolved yields a
    recorded Failed job and a 400 carrying its id.
    """
    svc = get_services()
    data = _json_body()
    try:
        req = schemas.PrintRequest.model_validate(data)
    except ValidationError as e:
        current_app.logger.info("Print request decode error: %s", e)
        return _json_error(_validation_message(e), 400)

    try:
        job = svc.printer.submit(req)
    except AuthorizationError as e:
        return _json_error(str(e), e.status_code)

    if job.status is JobStatus.FAILED:
        resp = schemas.PrintResponse(success=False, job_id=job.id, error=job.error)
        return jsonify(resp.to_json()), 400

    resp = schemas.PrintResponse(success=True, job_id=job.id, message=schemas.PRINT_ACCEPTED_MESSAGE)
    return jsonify(resp.to_json())


@api_bp.get("/printers")
def list_printers():
    svc = get_services()
    if request.args.get("refresh", "").lower() in ("1", "true", "yes"):
        svc.registry.refresh()
    default = svc.registry.default
    resp = schemas.PrintersResponse(
        printers=[schemas.PrinterOut(**vars(p)) for p in svc.registry.list()],
        default=default.name if default else None,
    )
    return jsonify(resp.to_json())


@api_bp.post("/printers/<path:name>/clear-queue")
def clear_printer_queue(name: str):
    svc = get_services()
    svc.printer.clear_queue(name)
    return jsonify(schemas.MessageResponse(message=f"Queue cleared for {name}").to_json())


@api_bp.post("/validate")
def validate_machine():
    svc = get_services()
    try:
        req = schemas.ValidateRequest.model_validate(_json_body())
    except ValidationError as e:
        return _json_error(_validation_message(e), 400)
    try:
        valid = svc.printer.validate_identity(req.machine_id)
    except IdentityUnavailableError:
        return _json_error("Failed to get machine ID", 500)
    return jsonify(schemas.ValidateResponse(valid=valid, machine_id=svc.identity or "").to_json())


@api_bp.get("/identifier")
def get_identifier():
    svc = get_services()
    if svc.identity is None:
        return _json_error("Failed to get machine ID", 500)
    return jsonify(schemas.IdentifierResponse(identifier=svc.identity).to_json())


@api_bp.post("/test-notification")
def test_notification():
    """
    Trigger the notification path. An undecodable body uses the defaults.
    """
    svc = get_services()
    data = _json_body(required=False) or {}
    try:
        req = schemas.NotificationRequest.model_validate(data)
    except ValidationError:
        req = schemas.NotificationRequest()
    svc.notifier.notify(req.title, req.message, icon=req.icon, sound=req.sound)
    return jsonify(schemas.MessageResponse(message="Notification sent").to_json())


@api_bp.post("/test-print")
def test_print():
    svc = get_services()
    try:
        req = schemas.SamplePrintRequest.model_validate(_json_body())
    except ValidationError as e:
        return _json_error(_validation_message(e), 400)

    job = svc.printer.submit_test_print(req.printer_name, req.printer_size)
    if job.status is JobStatus.FAILED:
        resp = schemas.PrintResponse(success=False, job_id=job.id, error=job.error)
        return jsonify(resp.to_json()), 400
    resp = schemas.PrintResponse(success=True, job_id=job.id, message=schemas.PRINT_ACCEPTED_MESSAGE)
    return jsonify(resp.to_json())
