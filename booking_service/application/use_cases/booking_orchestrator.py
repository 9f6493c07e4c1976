from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from booking_service.application.dto.booking_view import BookingView
from booking_service.application.exceptions import (
    InvalidInputError,
    NotFoundUpstreamError,
    UnauthorizedError,
    UpstreamUnavailableError,
)
from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.application.ports.local_user_directory import LocalUserDirectoryPort
from booking_service.application.ports.notifications import NotificationDispatcherPort
from booking_service.application.ports.user_directory import UserDirectoryPort
from booking_service.application.utils.civil_time import (
    DEFAULT_TIMEZONE,
    format_civil,
    parse_civil_datetime,
    start_of_civil_day,
    utc_now,
)
from booking_service.domain.entities.booking import Booking, BookingStatus
from booking_service.domain.entities.booking_notice import BookingNotice
from booking_service.domain.entities.local_user import LocalUser
from booking_service.domain.entities.user_profile import UserProfile

MAX_CANCELLED_BOOKINGS = 5
DEFAULT_UPCOMING_LIMIT = 5

NOT_OWNED_MESSAGE = "booking does not belong to the caller"


@dataclass(frozen=True)
class _CancelOutcome:
    booking: Booking
    transitioned: bool
    evicted: int


class BookingOrchestrator:
    def __init__(
        self,
        store: BookingStorePort,
        local_users: LocalUserDirectoryPort,
        user_directory: UserDirectoryPort,
        notifications: NotificationDispatcherPort,
        timezone: ZoneInfo | None = None,
        clock: Callable[[], datetime] = utc_now,
        max_cancelled: int = MAX_CANCELLED_BOOKINGS,
    ) -> None:
        self._store = store
        self._local_users = local_users
        self._user_directory = user_directory
        self._notifications = notifications
        self._timezone = timezone or ZoneInfo(DEFAULT_TIMEZONE)
        self._clock = clock
        self._max_cancelled = max_cancelled
        self._logger = logging.getLogger(__name__)

    def create_booking(self, caller_external_id: str, iso_date: str, service_name: str) -> BookingView:
        service_name = (service_name or "").strip()
        if not service_name:
            raise InvalidInputError("service name is required")
        try:
            date = parse_civil_datetime(iso_date, self._timezone)
        except (ValueError, TypeError) as e:
            raise InvalidInputError("invalid date format") from e

        profile = self._user_directory.verify(caller_external_id)

        local_user = self._local_users.find_by_external_id(caller_external_id)
        if local_user is None:
            local_user = self._local_users.upsert(caller_external_id, profile)
            self._logger.info(
                "Local user created",
                extra={"user_id": local_user.id, "external_id": caller_external_id},
            )

        booking = self._store.create(user_id=local_user.id, date=date, service_name=service_name)
        view = self._view(booking)
        self._logger.info("Booking created", extra={"booking_id": booking.id, "user_id": local_user.id})

        notice = BookingNotice(
            email=profile.email,
            display_name=profile.display_name,
            service_name=service_name,
            formatted_date=view.formatted_date,
        )
        self._dispatch(lambda: self._notifications.notify_created(notice), booking.id)
        return view

    def cancel_booking(self, booking_id: str, caller_local_user_id: str) -> BookingView:
        self._owned_booking(booking_id, caller_local_user_id)

        def cancel_and_enforce_retention(tx: BookingStorePort) -> _CancelOutcome:
            tx.lock_user(caller_local_user_id)
            current = tx.find_by_id(booking_id)
            if current is None or current.user_id != caller_local_user_id:
                raise UnauthorizedError(NOT_OWNED_MESSAGE)
            if current.is_cancelled:
                return _CancelOutcome(booking=current, transitioned=False, evicted=0)

            updated = tx.update_status(booking_id, BookingStatus.CANCELLED, self._clock())
            if updated is None:
                raise UnauthorizedError(NOT_OWNED_MESSAGE)

            # fresh read after the write, inside the same transaction
            cancelled = tx.find_cancelled(caller_local_user_id)
            excess = len(cancelled) - self._max_cancelled
            evicted = 0
            if excess > 0:
                evicted = tx.delete_batch([b.id for b in cancelled[:excess]])
            return _CancelOutcome(booking=updated, transitioned=True, evicted=evicted)

        outcome = self._store.run_transaction(cancel_and_enforce_retention)
        view = self._view(outcome.booking)

        if not outcome.transitioned:
            self._logger.info(
                "Booking already cancelled",
                extra={"booking_id": booking_id, "user_id": caller_local_user_id},
            )
            return view

        self._logger.info(
            "Booking cancelled",
            extra={"booking_id": booking_id, "user_id": caller_local_user_id, "evicted": outcome.evicted},
        )

        # the contact lookup runs with the delivery, after the commit and off the response path
        self._dispatch(
            lambda: self._notifications.notify_cancelled(
                lambda: self._cancellation_notice(caller_local_user_id, view)
            ),
            booking_id,
        )
        return view

    def delete_booking(self, booking_id: str, caller_local_user_id: str) -> bool:
        self._owned_booking(booking_id, caller_local_user_id)
        deleted = self._store.delete(booking_id)
        self._logger.info(
            "Booking deleted",
            extra={"booking_id": booking_id, "user_id": caller_local_user_id, "status": deleted},
        )
        return deleted

    def get_bookings(self, caller_local_user_id: str) -> list[BookingView]:
        return [self._view(b) for b in self._store.find_by_user(caller_local_user_id)]

    def get_next_bookings(self, caller_local_user_id: str, limit: int = DEFAULT_UPCOMING_LIMIT) -> list[BookingView]:
        if limit <= 0:
            return []
        since = start_of_civil_day(self._clock(), self._timezone)
        bookings = self._store.find_active_upcoming(caller_local_user_id, since=since, limit=limit)
        return [self._view(b) for b in bookings]

    def get_booking(self, booking_id: str, caller_local_user_id: str) -> BookingView:
        return self._view(self._owned_booking(booking_id, caller_local_user_id))

    def find_local_user(self, external_id: str) -> LocalUser | None:
        return self._local_users.find_by_external_id(external_id)

    def format_date(self, instant: datetime) -> str:
        return format_civil(instant, self._timezone)

    def _owned_booking(self, booking_id: str, caller_local_user_id: str) -> Booking:
        booking = self._store.find_by_id(booking_id)
        if booking is None or booking.user_id != caller_local_user_id:
            raise UnauthorizedError(NOT_OWNED_MESSAGE)
        return booking

    def _view(self, booking: Booking) -> BookingView:
        return BookingView(booking=booking, formatted_date=self.format_date(booking.date))

    def _cancellation_notice(self, local_user_id: str, view: BookingView) -> BookingNotice | None:
        local_user = self._local_users.find_by_id(local_user_id)
        if local_user is None:
            self._logger.warning(
                "Skipping cancellation notice",
                extra={"user_id": local_user_id, "reason": "local user missing"},
            )
            return None

        profile: UserProfile | None = None
        try:
            profile = self._user_directory.get_profile(local_user.external_id)
        except (UpstreamUnavailableError, NotFoundUpstreamError) as e:
            self._logger.warning(
                "Profile lookup failed, using cached contact",
                extra={"external_id": local_user.external_id, "error": str(e)},
            )

        return BookingNotice(
            email=profile.email if profile else local_user.email,
            display_name=profile.display_name if profile else local_user.display_name,
            service_name=view.booking.service_name,
            formatted_date=view.formatted_date,
        )

    def _dispatch(self, submit: Callable[[], None], booking_id: str) -> None:
        try:
            submit()
        except Exception as e:
            self._logger.error("Notification dispatch failed", extra={"booking_id": booking_id, "error": str(e)})
