from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional
from queue import Queue

JobKind = Literal["upload", "analysis"]


@dataclass
class Job:
    id: str
    kind: JobKind
    created_at: float = field(default_factory=time.time)
    queue: Queue = field(default_factory=Queue)  # progress events
    done: bool = False
    progress_pct: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None
    result: Optional[Dict[str, Any]] = None


class JobManager:
    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def create_job(self, kind: JobKind) -> Job:
        job = Job(id=str(uuid.uuid4()), kind=kind)
        with self._lock:
            self._jobs[job.id] = job
        return job

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def emit(self, job_id: str, event: Dict[str, Any]) -> None:
        job = self.get(job_id)
        if not job:
            return
        if isinstance(event.get("progress_pct"), int):
            job.progress_pct = event["progress_pct"]
        job.queue.put(event)

    def set_result(self, job_id: str, result: Dict[str, Any]) -> None:
        job = self.get(job_id)
        if not job:
            return
        job.result = result
        job.progress_pct = 100
        job.done = True
        job.queue.put({"type": "done", "ts": time.time()})

    def set_error(self, job_id: str, message: str, kind: str = "error") -> None:
        job = self.get(job_id)
        if not job:
            return
        job.error = message
        job.error_kind = kind
        job.done = True
        job.queue.put({"type": "error", "kind": kind, "message": message, "ts": time.time()})
        job.queue.put({"type": "done", "ts": time.time()})
