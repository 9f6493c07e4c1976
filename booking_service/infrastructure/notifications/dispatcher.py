from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable

from booking_service.application.ports.notifications import (
    NoticeBuilder,
    NotificationDispatcherPort,
    NotificationSenderPort,
)
from booking_service.domain.entities.booking_notice import BookingNotice


class BackgroundNotificationDispatcher(NotificationDispatcherPort):
    """
    Hands notices to a worker pool and returns immediately.

    At most `max_pending` sends are queued or running; past that, notices are dropped
    with a warning. Notices are built and sent in the worker; errors from either step
    are logged there and never reach the caller.
    """

    def __init__(self, sender: NotificationSenderPort, max_workers: int = 4, max_pending: int = 100) -> None:
        self._sender = sender
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")
        self._slots = threading.BoundedSemaphore(max_pending)
        self._pending: set[Future] = set()
        self._pending_lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def notify_created(self, notice: BookingNotice) -> None:
        self._submit("created", self._sender.send_booking_created, lambda: notice)

    def notify_cancelled(self, build_notice: NoticeBuilder) -> None:
        self._submit("cancelled", self._sender.send_booking_cancelled, build_notice)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for in-flight sends. Returns True if all of them finished."""
        with self._pending_lock:
            pending = list(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_pending, cancel_futures=not wait_for_pending)

    def _submit(self, kind: str, send: Callable[[BookingNotice], None], build_notice: NoticeBuilder) -> None:
        if not self._slots.acquire(blocking=False):
            self._logger.warning("Notification dropped", extra={"reason": "queue full", "status": kind})
            return
        try:
            future = self._executor.submit(self._deliver, kind, send, build_notice)
        except RuntimeError as e:
            # executor already shut down
            self._slots.release()
            self._logger.warning("Notification dropped", extra={"reason": str(e), "status": kind})
            return
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _deliver(self, kind: str, send: Callable[[BookingNotice], None], build_notice: NoticeBuilder) -> None:
        try:
            notice = build_notice()
            if notice is None:
                self._logger.info("Notification skipped", extra={"status": kind, "reason": "no contact"})
                return
            send(notice)
        except Exception as e:
            self._logger.error("Notification delivery failed", extra={"status": kind, "error": str(e)})
        finally:
            self._slots.release()

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)
