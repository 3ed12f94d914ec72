from __future__ import annotations
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from shelfindex.core.entities import PassResult, SchedulerStatus
from shelfindex.core.ports.document_store import IDocumentStore
from shelfindex.core.services.scan_orchestrator import ScanOrchestrator, new_correlation_id

logger = logging.getLogger("shelf.scheduler")

DEFAULT_INTERVAL_SECONDS = 24 * 60 * 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanScheduler:
    """
    Recurring background trigger for library passes.

    A single timer thread ticks immediately on start and then every
    `interval_seconds`. A tick only launches a pass when none is running, so a
    crashed or slow pass is simply picked up again by a later tick. On-demand
    triggers claim the same pass slot before their thread starts. Every
    started run has its own stop event. All mutable state lives on the
    instance behind one lock.
    """

    def __init__(
        self,
        orchestrator: ScanOrchestrator,
        store: IDocumentStore,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        latest_limit: int = 10,
        clock: Callable[[], datetime] = _utcnow,
        correlation_ids: Callable[[], str] = new_correlation_id,
    ):
        self.orchestrator = orchestrator
        self.store = store
        self.interval_seconds = float(interval_seconds) if interval_seconds and interval_seconds > 0 else DEFAULT_INTERVAL_SECONDS
        self.latest_limit = latest_limit
        self.clock = clock
        self.correlation_ids = correlation_ids

        self._lock = threading.Lock()
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

        self.started = False
        self.is_running = False
        self.runs_completed = 0
        self.last_correlation_id: Optional[str] = None
        self.last_run_start: Optional[datetime] = None
        self.last_run_end: Optional[datetime] = None
        self.last_run_duration_ms: Optional[int] = None
        self.last_error: Optional[str] = None
        self.last_result: Optional[PassResult] = None
        self.last_tick_at: datetime = clock()

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------
    def ensure_started(self) -> bool:
        """Start the timer thread once; later calls are no-ops returning False."""
        with self._lock:
            if self.started:
                return False
            self.started = True
            # each run owns its stop event so a restart never revives an old loop
            self._stop = threading.Event()
            self._thread = threading.Thread(target=self._loop, args=(self._stop,), name="shelf_scheduler", daemon=True)
            self._thread.start()
        logger.info("⏰ Scan scheduler started (interval=%.0fs)", self.interval_seconds)
        return True

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        with self._lock:
            stop_event, thread = self._stop, self._thread
            self.started = False
            self._stop = None
            self._thread = None
        if stop_event is not None:
            stop_event.set()
        if thread and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Scheduler thread still finishing a pass after %.1fs; it will exit afterwards", timeout or 0)
        logger.info("🛑 Scan scheduler stopped")

    def _loop(self, stop_event: threading.Event) -> None:
        self.tick()
        while not stop_event.wait(self.interval_seconds):
            self.tick()

    # ------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------
    def _begin(self, scheduled: bool) -> Optional[str]:
        """Reserve the single pass slot; None when a pass already holds it."""
        with self._lock:
            if scheduled:
                self.last_tick_at = self.clock()
            if self.is_running:
                return None
            self.is_running = True
            correlation_id = self.correlation_ids()
            self.last_correlation_id = correlation_id
            self.last_run_start = self.clock()
            self.last_error = None
        return correlation_id

    def _run_pass(self, correlation_id: str) -> None:
        logger.info("Background scan starting [%s]", correlation_id)
        result: Optional[PassResult] = None
        error: Optional[str] = None
        try:
            result = self.orchestrator.run(correlation_id)
            logger.info("Background scan finished [%s]", correlation_id)
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.error("❌ Background scan failed [%s]: %s", correlation_id, error, exc_info=True)
        finally:
            with self._lock:
                end = self.clock()
                self.last_run_end = end
                self.last_run_duration_ms = int((end - self.last_run_start).total_seconds() * 1000)
                if result is not None:
                    self.last_result = result
                self.last_error = error
                self.is_running = False
                self.runs_completed += 1

    def tick(self) -> bool:
        """Run one pass if idle. Returns False when a pass was already running."""
        correlation_id = self._begin(scheduled=True)
        if correlation_id is None:
            return False
        self._run_pass(correlation_id)
        return True

    def trigger(self) -> bool:
        """Kick an on-demand pass in the background unless one is running."""
        correlation_id = self._begin(scheduled=False)
        if correlation_id is None:
            return False
        threading.Thread(target=self._run_pass, args=(correlation_id,), name="shelf_scan_manual", daemon=True).start()
        return True

    # ------------------------------------------------------------
    # Status
    # ------------------------------------------------------------
    def get_status(self) -> SchedulerStatus:
        with self._lock:
            snapshot = dict(
                started=self.started,
                interval_seconds=self.interval_seconds,
                is_running=self.is_running,
                runs_completed=self.runs_completed,
                last_correlation_id=self.last_correlation_id,
                last_run_start=self.last_run_start,
                last_run_end=self.last_run_end,
                last_run_duration_ms=self.last_run_duration_ms,
                last_error=self.last_error,
                last_result=self.last_result,
                next_scheduled_run_at=self.last_tick_at + timedelta(seconds=self.interval_seconds),
            )
        latest = self.store.latest_documents(self.latest_limit)
        total = self.store.count_documents()
        return SchedulerStatus(latest_documents=latest, total_documents=total, **snapshot)
