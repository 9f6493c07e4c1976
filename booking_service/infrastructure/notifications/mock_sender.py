from __future__ import annotations

import logging

from booking_service.application.ports.notifications import NotificationSenderPort
from booking_service.domain.entities.booking_notice import BookingNotice


class MockNotificationSender(NotificationSenderPort):
    def __init__(self) -> None:
        self.sent: list[tuple[str, BookingNotice]] = []
        self._logger = logging.getLogger(__name__)

    def send_booking_created(self, notice: BookingNotice) -> None:
        self.sent.append(("created", notice))
        self._logger.info("Mock booking notice", extra={"reason": "created", "service": notice.service_name})

    def send_booking_cancelled(self, notice: BookingNotice) -> None:
        self.sent.append(("cancelled", notice))
        self._logger.info("Mock booking notice", extra={"reason": "cancelled", "service": notice.service_name})
