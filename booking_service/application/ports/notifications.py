from abc import ABC, abstractmethod
from typing import Callable

from booking_service.domain.entities.booking_notice import BookingNotice

NoticeBuilder = Callable[[], BookingNotice | None]


class NotificationSenderPort(ABC):
    """Transport to the notification service. May raise; callers decide what to do with failures."""

    @abstractmethod
    def send_booking_created(self, notice: BookingNotice) -> None:
        raise NotImplementedError

    @abstractmethod
    def send_booking_cancelled(self, notice: BookingNotice) -> None:
        raise NotImplementedError


class NotificationDispatcherPort(ABC):
    """Fire-and-forget delivery. Implementations never raise to the caller."""

    @abstractmethod
    def notify_created(self, notice: BookingNotice) -> None:
        raise NotImplementedError

    @abstractmethod
    def notify_cancelled(self, build_notice: NoticeBuilder) -> None:
        """
        `build_notice` looks up the contact and returns the notice, or None to skip the send.
        It runs with the delivery, not on the caller's path.
        """
        raise NotImplementedError
