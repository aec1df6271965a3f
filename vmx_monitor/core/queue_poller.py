"""
Queue Poller: keeps a read-through view of the remote job queue.

The job list only ever changes through a successful fetch; cancelling a
job never edits local state, it asks the server and then re-fetches.
Timers and background calls go through a Scheduler, so HTTP requests stay
off the UI thread on Tk and run under a manual clock in tests.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from vmx_monitor.core.constants import POLL_INTERVAL_SEC, ERROR_CLEAR_SEC
from vmx_monitor.core.error_codes import MonitorError
from vmx_monitor.core.models import QueueJob
from vmx_monitor.core.queue_client import QueueClient

logger = logging.getLogger(__name__)

# Receives (result, None) on success or (None, exception) on failure
DoneCallback = Callable[[Any, Optional[BaseException]], None]


class Scheduler(ABC):
    """Timer source plus a way to run blocking work off the scheduler's thread."""

    @abstractmethod
    def call_later(self, delay_sec: float, callback: Callable[[], None]):
        """Run `callback` once after `delay_sec`. Returns a token for cancel()."""

    @abstractmethod
    def cancel(self, token):
        ...

    def run_in_background(self, work: Callable[[], Any], on_done: DoneCallback):
        """
        Run `work`, then hand its outcome to `on_done` on the scheduler's thread.
        This base version runs inline; TkScheduler uses a worker thread.
        """
        try:
            result = work()
        except Exception as e:
            on_done(None, e)
            return
        on_done(result, None)


class QueuePoller:
    """Fetches the job list now and every `interval_sec` until stopped."""

    def __init__(self, client: QueueClient, scheduler: Scheduler,
                 interval_sec: float = POLL_INTERVAL_SEC,
                 error_clear_sec: float = ERROR_CLEAR_SEC):
        self.client = client
        self.scheduler = scheduler
        self.interval_sec = interval_sec
        self.error_clear_sec = error_clear_sec

        self.jobs: list[QueueJob] = []
        self.error: str = ''
        self.loading = True
        self.cancelling: set[str] = set()

        self._active = False
        self._fetching = False
        self._timer = None
        self._error_timer = None

        self.on_change: Optional[Callable[[], None]] = None

    # ── Polling loop ──────────────────────────────────────────────────

    def is_running(self) -> bool:
        return self._active

    def is_fetching(self) -> bool:
        return self._fetching

    def start(self):
        """Fetch immediately, then keep polling."""
        if self._active:
            return
        self._active = True
        self._tick()

    def stop(self):
        self._active = False
        if self._timer is not None:
            self.scheduler.cancel(self._timer)
            self._timer = None

    def _tick(self):
        self._timer = None
        self.refresh()
        # A failed or slow fetch doesn't end the loop
        if self._active:
            self._timer = self.scheduler.call_later(self.interval_sec, self._tick)

    def refresh(self) -> bool:
        """
        Start one fetch of the job list. Returns False if a fetch is
        already outstanding; its result will still be applied.
        """
        if self._fetching:
            logger.debug("Queue fetch skipped: previous request still running")
            return False
        self._fetching = True
        client = self.client
        self.scheduler.run_in_background(client.list_jobs, self._on_fetched)
        return True

    def _on_fetched(self, jobs: list[QueueJob] | None, error: BaseException | None):
        self._fetching = False
        self.loading = False
        if error is not None:
            logger.error("Error fetching queue: %s", error)
            self.error = _error_text(error)
        else:
            self.jobs = jobs
            self.error = ''
        self._notify()

    # ── Cancellation ──────────────────────────────────────────────────

    def is_cancelling(self, job_id: str) -> bool:
        return job_id in self.cancelling

    def cancel(self, job_id: str,
               confirm: Optional[Callable[[str], bool]] = None) -> bool:
        """
        Ask the server to cancel (or remove) a job, then re-fetch.
        Returns False when declined or already in flight; the outcome of a
        sent request shows up through `error` and the next fetch.
        """
        if job_id in self.cancelling:
            return False
        if confirm is not None and not confirm(job_id):
            return False

        self.cancelling.add(job_id)
        self._notify()
        client = self.client
        self.scheduler.run_in_background(
            lambda: client.cancel_job(job_id),
            lambda _result, error: self._on_cancelled(job_id, error))
        return True

    def _on_cancelled(self, job_id: str, error: BaseException | None):
        self.cancelling.discard(job_id)
        if error is not None:
            logger.error("Error cancelling job %s: %s", job_id, error)
            self._show_transient_error(_error_text(error))
            self._notify()
            return
        self._notify()
        self.refresh()

    def _show_transient_error(self, message: str):
        self.error = message
        if self._error_timer is not None:
            self.scheduler.cancel(self._error_timer)
        self._error_timer = self.scheduler.call_later(
            self.error_clear_sec, lambda: self._clear_error(message))

    def _clear_error(self, message: str):
        self._error_timer = None
        if self.error == message:
            self.error = ''
            self._notify()

    def _notify(self):
        if self.on_change:
            try:
                self.on_change()
            except Exception as e:
                logger.error("Queue change callback failed: %s", e, exc_info=True)


def _error_text(error: BaseException) -> str:
    if isinstance(error, MonitorError):
        return error.message
    return f"Unexpected error: {error}"
