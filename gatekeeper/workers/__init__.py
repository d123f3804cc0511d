# =======================================================================================
# gatekeeper/workers/__init__.py - Workers Package
# =======================================================================================
from .notification_worker import NotificationWorker, start_notification_worker, stop_notification_worker

__all__ = ["NotificationWorker", "start_notification_worker", "stop_notification_worker"]
