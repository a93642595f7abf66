"""Background report generation with latest-request-wins cancellation."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from queue import Empty, Queue

from .tree_builder import ReportCancelled


@dataclass(frozen=True)
class ReportRequest:
    """One report job."""

    request_id: int
    subroot: Path | None
    timeout: float | None


@dataclass(frozen=True)
class ReportResult:
    """Finished job: ``report`` on success, ``error`` on failure."""

    request: ReportRequest
    report: str | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ReportWorker:
    """Run ``generate_report`` on a worker thread.

    Submitting a new request cancels the one in flight. Cancelled jobs deliver
    nothing; other failures are delivered as results with ``error`` set.
    """

    def __init__(
        self,
        generate_report: Callable[..., str],
        on_result: Callable[[ReportResult], None] | None = None,
    ) -> None:
        self._generate_report = generate_report
        self._on_result = on_result
        self._lock = threading.Lock()
        self._next_request_id = 1
        self._cancel_event: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self._results: Queue[ReportResult] = Queue()

    def submit(self, subroot: Path | None = None, timeout: float | None = None) -> int:
        """Cancel any running job, start a new one, and return its request id."""
        with self._lock:
            if self._cancel_event is not None:
                self._cancel_event.set()
            request = ReportRequest(request_id=self._next_request_id, subroot=subroot, timeout=timeout)
            self._next_request_id += 1
            cancel_event = threading.Event()
            self._cancel_event = cancel_event
            thread = threading.Thread(
                target=self._run,
                args=(request, cancel_event),
                name=f"repotxt-report-{request.request_id}",
                daemon=True,
            )
            self._thread = thread
        thread.start()
        return request.request_id

    def cancel(self) -> None:
        with self._lock:
            if self._cancel_event is not None:
                self._cancel_event.set()

    def _run(self, request: ReportRequest, cancel_event: threading.Event) -> None:
        try:
            report = self._generate_report(
                subroot=request.subroot,
                cancel_event=cancel_event,
                timeout=request.timeout,
            )
        except ReportCancelled as exc:
            if cancel_event.is_set():
                return
            result = ReportResult(request=request, error=exc)
        except Exception as exc:
            result = ReportResult(request=request, error=exc)
        else:
            if cancel_event.is_set():
                return
            result = ReportResult(request=request, report=report)

        self._results.put(result)
        if self._on_result is not None:
            self._on_result(result)

    def poll(self) -> ReportResult | None:
        """Return the next finished result without blocking."""
        try:
            return self._results.get_nowait()
        except Empty:
            return None

    def wait(self, timeout: float | None = None) -> ReportResult | None:
        """Join the latest job and return the next finished result, if any."""
        with self._lock:
            thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return self.poll()
