"""
Task reminder scanner.

Periodically classifies every open task against the clock and sends
TASK_DUE_SOON / TASK_OVERDUE notifications on classification changes.

Level-triggered: each run looks at current state only, so a skipped or
late run catches up fully on the next one. The per-task marker
(last_notified_classification) is advanced only after notify() returns,
so a crash in between produces a duplicate alert on the next run rather
than a lost one.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass
from datetime import datetime, timedelta

from core.config import CRMConfig
from core.models import DueClassification, NotificationType, Task
from core.services.notification_service import NotificationEvent, NotificationService
from core.services.task_service import TaskService
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

LOCK_KEY = "realty-crm:task-reminder-scanner"

_NOTIFICATION_TYPES = {
    DueClassification.DUE_SOON: NotificationType.TASK_DUE_SOON,
    DueClassification.OVERDUE: NotificationType.TASK_OVERDUE,
}


def classify(task: Task, now: datetime, threshold: timedelta) -> DueClassification:
    """
    Where a task stands against its due date.

    OVERDUE if due before now; DUE_SOON if due in [now, now + threshold);
    NOT_DUE otherwise.
    """
    if task.due_date < now:
        return DueClassification.OVERDUE
    if task.due_date < now + threshold:
        return DueClassification.DUE_SOON
    return DueClassification.NOT_DUE


@dataclass
class ScanResult:
    """Counts for one scanner run."""

    scanned: int = 0
    due_soon: int = 0
    overdue: int = 0
    reset: int = 0
    errors: int = 0
    skipped: bool = False

    @property
    def notified(self) -> int:
        return self.due_soon + self.overdue


class TaskReminderScanner:
    """
    Due-soon/overdue scanner with an async run loop.

    `lock` is optional: anything with acquire_lock(key, ttl_seconds) and
    release_lock(key, token), such as ValkeyClient. With a lock, only one
    process scans at a time and a run that cannot take it is skipped.
    """

    def __init__(
        self,
        task_service: TaskService,
        notification_service: NotificationService,
        config: CRMConfig,
        lock=None,
    ):
        self.task_service = task_service
        self.notification_service = notification_service
        self.config = config
        self.lock = lock
        self.running = False

        self._runs = 0
        self._notifications = 0
        self._errors = 0
        self._last_run: datetime | None = None
        self._last_result: ScanResult | None = None

    def run_once(self, now: datetime | None = None) -> ScanResult:
        """
        Scan every open task once.

        Args:
            now: Clock reading to classify against (defaults to now)

        Returns:
            ScanResult with per-run counts
        """
        token = None
        if self.lock is not None:
            token = self.lock.acquire_lock(LOCK_KEY, self.config.scanner_lock_ttl_seconds)
            if token is None:
                logger.info("Another scanner holds the lock; skipping run")
                return ScanResult(skipped=True)

        try:
            result = self._scan(now or now_utc())
        finally:
            if token is not None:
                self.lock.release_lock(LOCK_KEY, token)

        self._runs += 1
        self._notifications += result.notified
        self._errors += result.errors
        self._last_run = now_utc()
        self._last_result = result

        logger.info(
            f"Reminder scan: {result.scanned} open tasks, {result.due_soon} due soon, "
            f"{result.overdue} overdue, {result.reset} reset, {result.errors} errors"
        )
        return result

    def _scan(self, now: datetime) -> ScanResult:
        result = ScanResult()
        threshold = self.config.due_soon_threshold

        for task in self.task_service.list_open_for_scan():
            result.scanned += 1
            try:
                classification = classify(task, now, threshold)
                if classification == task.last_notified_classification:
                    continue
                self._advance(task, classification, result)
            except Exception as e:
                result.errors += 1
                logger.error(f"Reminder for task {task.id} failed: {e}")

        return result

    def _advance(self, task: Task, classification: DueClassification, result: ScanResult):
        """Notify (unless moving back to NOT_DUE), then move the marker."""
        if classification == DueClassification.NOT_DUE:
            if self.task_service.record_classification(task, classification) is not None:
                result.reset += 1
            return

        self.notification_service.notify(NotificationEvent(
            type=_NOTIFICATION_TYPES[classification],
            recipient_id=task.assigned_to_id,
            task=task,
        ))
        if classification == DueClassification.DUE_SOON:
            result.due_soon += 1
        else:
            result.overdue += 1

        if self.task_service.record_classification(task, classification) is None:
            logger.warning(f"Marker for task {task.id} moved during scan; left as is")

    def get_status(self) -> dict:
        """Current scanner status."""
        last = self._last_result
        return {
            "running": self.running,
            "config": {
                "scan_interval_seconds": self.config.scan_interval_seconds,
                "due_soon_threshold_hours": self.config.due_soon_threshold_hours,
                "locked": self.lock is not None,
            },
            "stats": {
                "runs": self._runs,
                "notifications": self._notifications,
                "errors": self._errors,
            },
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "last_result": {
                "scanned": last.scanned,
                "due_soon": last.due_soon,
                "overdue": last.overdue,
                "reset": last.reset,
                "errors": last.errors,
            } if last else None,
        }

    def _setup_signal_handlers(self):
        """Setup graceful shutdown handlers."""
        def shutdown_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down...")
            self.running = False

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)

    async def run(self):
        """Scan on a fixed interval until stopped."""
        self.running = True
        self._setup_signal_handlers()

        logger.info("=" * 60)
        logger.info("Task Reminder Scanner Starting")
        logger.info("=" * 60)
        logger.info(f"  Scan interval: {self.config.scan_interval_seconds}s")
        logger.info(f"  Due-soon threshold: {self.config.due_soon_threshold_hours}h")
        logger.info(f"  Single-flight lock: {self.lock is not None}")
        logger.info("=" * 60)

        loop = asyncio.get_running_loop()
        while self.running:
            try:
                await loop.run_in_executor(None, self.run_once)
            except Exception as e:
                self._errors += 1
                logger.error(f"Reminder scan error: {e}")

            # Sleep in short steps so a shutdown signal is honoured promptly
            waited = 0
            while self.running and waited < self.config.scan_interval_seconds:
                await asyncio.sleep(1)
                waited += 1

        logger.info("Scanner stopped")
        logger.info(
            f"Final stats: {self._runs} runs, {self._notifications} notifications, "
            f"{self._errors} errors"
        )

    def start(self):
        """Start the scanner (blocking)."""
        asyncio.run(self.run())
