from __future__ import annotations

import logging

import httpx

from booking_service.application.ports.notifications import NotificationSenderPort
from booking_service.core.config import settings
from booking_service.domain.entities.booking_notice import BookingNotice


class NotificationServiceClient(NotificationSenderPort):
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url or settings.NOTIFICATION_SERVICE_URL
        if not self._base_url:
            raise ValueError("NOTIFICATION_SERVICE_URL is required for the notification client")
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout if timeout is not None else settings.NOTIFICATION_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._logger = logging.getLogger(__name__)

    def send_booking_created(self, notice: BookingNotice) -> None:
        self._post("/notify/reserva", notice)

    def send_booking_cancelled(self, notice: BookingNotice) -> None:
        self._post("/notify/cancelacion", notice)

    def close(self) -> None:
        self._client.close()

    def _post(self, path: str, notice: BookingNotice) -> None:
        resp = self._client.post(path, json=notice.to_payload())
        if resp.status_code >= 400:
            self._logger.error(
                "Notification send failed",
                extra={"status": resp.status_code, "reason": path, "error": resp.text[:200]},
            )
            resp.raise_for_status()
        self._logger.info("Notification sent", extra={"reason": path})
