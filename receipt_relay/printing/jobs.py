"""
Print job records and the in-memory job history.
"""

from __future__ import annotations

import enum
import itertools
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


class JobStatus(str, enum.Enum):
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PrintJob:
    """
    One print submission. Records are immutable; a status change is a new
    record with the same id written back to the store.
    """

    invoice_no: str
    printer_name: str
    receipt_type: str
    status: JobStatus = JobStatus.PROCESSING
    error: str = ""
    timestamp: datetime = field(default_factory=_utc_now)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def succeeded(self) -> "PrintJob":
        return replace(self, status=JobStatus.SUCCESS, error="")

    def failed(self, error: str) -> "PrintJob":
        return replace(self, status=JobStatus.FAILED, error=error)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "invoiceNo": self.invoice_no,
            "printerName": self.printer_name,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "receiptType": self.receipt_type,
        }
        if self.error:
            d["error"] = self.error
        return d


class JobStore:
    """
    Thread-safe job history.

    upsert() replaces an existing record with the same id in place, so a job
    never appears twice. list() returns newest-submitted first; records with
    equal timestamps are ordered by first insertion, newest first.

    max_jobs > 0 bounds the history by dropping the oldest submissions.
    """

    def __init__(self, max_jobs: int = 0) -> None:
        self.max_jobs = max_jobs
        self._lock = threading.RLock()
        self._jobs: Dict[str, Tuple[int, PrintJob]] = {}
        self._seq = itertools.count()

    def _prune_if_needed(self) -> None:
        if self.max_jobs <= 0:
            return
        while len(self._jobs) > self.max_jobs:
            oldest_id = min(self._jobs, key=lambda k: (self._jobs[k][1].timestamp, self._jobs[k][0]))
            self._jobs.pop(oldest_id, None)

    def upsert(self, job: PrintJob) -> None:
        with self._lock:
            existing = self._jobs.get(job.id)
            seq = existing[0] if existing is not None else next(self._seq)
            self._jobs[job.id] = (seq, job)
            self._prune_if_needed()

    def get(self, job_id: str) -> Optional[PrintJob]:
        with self._lock:
            entry = self._jobs.get(job_id)
            return entry[1] if entry else None

    def list(self) -> List[PrintJob]:
        with self._lock:
            entries = list(self._jobs.values())
        entries.sort(key=lambda e: (e[1].timestamp, e[0]), reverse=True)
        return [job for _, job in entries]

    def clear(self) -> None:
        with self._lock:
            self._jobs = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


__all__ = ["JobStatus", "JobStore", "PrintJob"]
