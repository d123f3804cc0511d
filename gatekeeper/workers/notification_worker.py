# =======================================================================================
# gatekeeper/workers/notification_worker.py - Background Notification Worker
# =======================================================================================
import queue
import threading
from typing import Optional, Tuple
from loguru import logger
from ..config import config
from ..services.notification_service import EmailNotifier

NotificationJob = Tuple[str, str, str, Optional[str]]


class NotificationWorker:
    """Delivers resident alerts off the request path, one job at a time."""

    def __init__(self, notifier=None, maxsize: int = None):
        self.notifier = notifier or EmailNotifier()
        self.jobs: "queue.Queue[NotificationJob]" = queue.Queue(maxsize or config.NOTIFY_QUEUE_SIZE)
        self.running = False
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Start / Stop
    # ------------------------------------------------------------------
    def start(self):
        """Start the worker in a background thread."""
        with self._lock:
            if self.running:
                return
            self.running = True
            self._thread = threading.Thread(target=self._run_loop, name="notification-worker", daemon=True)
            self._thread.start()
        logger.debug("[notify] worker started")

    def stop(self, timeout: float = 5.0):
        """Stop the worker once queued jobs are drained or the timeout passes."""
        self.running = False
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------
    def notify(self, to_email: str, recipient_name: str, subject_name: str, context: Optional[str]) -> None:
        """Queue an alert; never raises and never blocks the caller."""
        if not self.running:
            self.start()
        try:
            self.jobs.put_nowait((to_email, recipient_name, subject_name, context))
        except queue.Full:
            logger.warning("[notify] queue full, dropping alert for {}", to_email)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------
    def _run_loop(self):
        while self.running or not self.jobs.empty():
            try:
                job = self.jobs.get(timeout=0.5)
            except queue.Empty:
                continue
            try:
                self.notifier.notify(*job)
            except Exception as e:
                logger.error("[notify] delivery to {} failed: {}", job[0], e)
            finally:
                self.jobs.task_done()


# ----------------------------------------------------------------------
# Global instance + entrypoints
# ----------------------------------------------------------------------
notification_worker = NotificationWorker()


def start_notification_worker():
    """Called from FastAPI startup."""
    notification_worker.start()


def stop_notification_worker():
    """Called from FastAPI shutdown."""
    notification_worker.stop()
