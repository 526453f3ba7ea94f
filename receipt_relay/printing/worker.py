"""
Print job orchestration for Receipt Relay.

This module owns:
- Caller identity validation
- Printer resolution through the registry (exact, refreshed, default)
- A thread-backed job queue with a small pool of worker threads
- Job lifecycle: processing -> success | failed, recorded in the JobStore

submit() returns as soon as the job is recorded and queued; rendering and
the transport call happen on a worker thread. It is Flask-agnostic so it can
be driven from web routes, the CLI and tests alike.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from receipt_relay.core.config import AppConfig
from receipt_relay.core.errors import AuthorizationError, IdentityUnavailableError, PrinterNotFoundError
from receipt_relay.core.events import Notifier
from receipt_relay.printing.backends import PrinterBackend, PrinterInfo
from receipt_relay.printing.escpos import EscposEncoder
from receipt_relay.printing.jobs import JobStore, PrintJob
from receipt_relay.printing.order import OrderData, PrintRequest, sample_order
from receipt_relay.printing.raster import ImageCache
from receipt_relay.printing.receipt import render
from receipt_relay.printing.registry import PrinterRegistry

logger = logging.getLogger(__name__)

BLOCKING_STATUSES = ("offline", "not available")


@dataclass(frozen=True)
class _Task:
    job: PrintJob
    printer: PrinterInfo
    order: OrderData
    size: str


class PrintService:
    """
    Accepts print requests and runs them in the background.

    Args:
        config: runtime settings (worker count, image options).
        identity: this machine's id, or None when it could not be determined
            (identity checks are then skipped with a warning).
    """

    def __init__(
        self,
        config: AppConfig,
        identity: Optional[str],
        registry: PrinterRegistry,
        store: JobStore,
        backend: PrinterBackend,
        notifier: Notifier,
        image_cache: Optional[ImageCache] = None,
    ) -> None:
        self.config = config
        self.identity = identity
        self.registry = registry
        self.store = store
        self.backend = backend
        self.notifier = notifier
        self.image_cache = image_cache or ImageCache(config.image_cache_dir, timeout=config.image_timeout)

        self.queue: "queue.Queue[_Task]" = queue.Queue()
        self._workers: List[threading.Thread] = []
        self._workers_lock = threading.Lock()

    # -- identity ----------------------------------------------------------

    def validate_identity(self, machine_id: str) -> bool:
        """
        Raises:
            IdentityUnavailableError when this machine has no identity.
        """
        if self.identity is None:
            raise IdentityUnavailableError("Failed to get machine ID")
        return machine_id == self.identity

    def _authorize(self, machine_id: str) -> None:
        if self.identity is None:
            logger.warning("Machine identity unavailable; skipping caller validation")
            return
        if machine_id != self.identity:
            logger.warning("Print request validation failed: Invalid Machine ID")
            self.notifier.notify("Validation Failed", "Unique ID validation failed.")
            raise AuthorizationError("Invalid Machine ID")

    # -- submission --------------------------------------------------------

    def submit(self, req: PrintRequest) -> PrintJob:
        """
        Validate, resolve and queue a print request.

        Returns the recorded job: ``processing`` when queued, or ``failed``
        when no printer could be resolved (nothing is queued then).

        Raises:
            AuthorizationError before any job is recorded.
        """
        self._authorize(req.machine_id)
        return self._accept(req.printer_name, req.order_data, req.printer_size, req.receipt_type)

    def submit_test_print(self, printer_name: str, size: str = "80mm") -> PrintJob:
        """
        Queue the sample bill on a printer; used by the UI's test button.
        """
        return self._accept(printer_name, sample_order(), size, "bill")

    def _accept(self, printer_name: str, order: OrderData, size: str, receipt_type: str) -> PrintJob:
        # Recorded as processing under the requested name until resolved
        job = PrintJob(invoice_no=order.invoice_no, printer_name=printer_name, receipt_type=receipt_type)
        self.store.upsert(job)

        try:
            resolution = self.registry.resolve(printer_name)
        except PrinterNotFoundError as e:
            job = job.failed(str(e))
            self.store.upsert(job)
            logger.warning("[Job %s] Print failed: %s", job.id, e)
            self.notifier.notify("Printer Not Found", str(e), sound=True)
            return job

        if resolution.printer.name != printer_name:
            job = replace(job, printer_name=resolution.printer.name)
            self.store.upsert(job)
        self.queue.put(_Task(job=job, printer=resolution.printer, order=order, size=size))
        logger.info("[Job %s] Queued %s for '%s' (queue_size=%d)", job.id, receipt_type, job.printer_name, self.queue.qsize())
        return job

    def clear_queue(self, printer_name: str) -> None:
        """
        Purge the transport's queue for a known printer.

        Raises:
            PrinterNotFoundError for names the registry does not know (even
            after a refresh); TransportError when the purge fails.
        """
        if self.registry.get(printer_name) is None:
            self.registry.refresh()
            if self.registry.get(printer_name) is None:
                raise PrinterNotFoundError(printer_name)
        self.backend.clear_queue(printer_name)
        logger.info("Cleared print queue for '%s'", printer_name)

    # -- execution ---------------------------------------------------------

    def new_encoder(self) -> EscposEncoder:
        return EscposEncoder(
            image_cache=self.image_cache,
            max_image_width=self.config.image_max_width,
            encoding=self.config.text_encoding,
        )

    def run_task(self, task: _Task) -> PrintJob:
        """
        Render and send one job. Never raises; the outcome is written to the store.
        """
        job = task.job
        logger.info("[Job %s] Starting background print for %s", job.id, job.printer_name)

        status = task.printer.status.lower()
        if any(s in status for s in BLOCKING_STATUSES):
            logger.warning("Printer '%s' status is %s. Might fail.", job.printer_name, task.printer.status)

        try:
            encoder = self.new_encoder()
            render(encoder, task.order, task.size, job.receipt_type)
            data = encoder.get_bytes()
            logger.info("[Job %s] ESC/POS bytes generated (%d bytes)", job.id, len(data))
            self.backend.write_raw(job.printer_name, data)
        except Exception as e:
            logger.error("[Job %s] PRINT FAILED: %s", job.id, e, exc_info=not isinstance(e, OSError))
            final = job.failed(str(e))
            self.store.upsert(final)
            self.notifier.notify("Print Failed", f"Failed to print on {job.printer_name}: {e}", sound=True)
            return final

        logger.info("[Job %s] PRINT SUCCESS", job.id)
        final = job.succeeded()
        self.store.upsert(final)
        return final

    def process_pending(self) -> int:
        """
        Run every queued task in the calling thread. Returns the number run.
        """
        count = 0
        while True:
            try:
                task = self.queue.get_nowait()
            except queue.Empty:
                return count
            try:
                self.run_task(task)
                count += 1
            finally:
                self.queue.task_done()

    def _worker_loop(self) -> None:
        while True:
            task = self.queue.get()
            try:
                self.run_task(task)
            except Exception:
                logger.exception("Unexpected error in print worker")
            finally:
                self.queue.task_done()

    def ensure_workers(self) -> None:
        """
        Start the worker threads (idempotent; dead threads are replaced).
        """
        with self._workers_lock:
            self._workers = [t for t in self._workers if t.is_alive()]
            missing = self.config.worker_threads - len(self._workers)
            for _ in range(missing):
                t = threading.Thread(
                    target=self._worker_loop,
                    daemon=True,
                    name=f"receipt-relay-worker-{len(self._workers) + 1}",
                )
                t.start()
                self._workers.append(t)
            if missing > 0:
                logger.info("Background print workers started: %d", len(self._workers))

    def status(self) -> Dict[str, Any]:
        with self._workers_lock:
            alive = sum(1 for t in self._workers if t.is_alive())
        return {
            "workers_started": bool(self._workers),
            "workers_alive": alive,
            "queue_size": self.queue.qsize(),
        }


__all__ = ["BLOCKING_STATUSES", "PrintService"]
