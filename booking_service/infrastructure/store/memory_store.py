from __future__ import annotations

import copy
import logging
import threading
import uuid
from datetime import datetime
from typing import Callable, TypeVar

from booking_service.application.exceptions import BookingServiceError, TransactionFailedError
from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.application.ports.local_user_directory import LocalUserDirectoryPort
from booking_service.application.utils.civil_time import as_utc, utc_now
from booking_service.domain.entities.booking import Booking, BookingStatus
from booking_service.domain.entities.local_user import LocalUser
from booking_service.domain.entities.user_profile import UserProfile

T = TypeVar("T")


def _new_id() -> str:
    return uuid.uuid4().hex


class MemoryBookingStore(BookingStorePort):
    """
    Process-local booking table.

    One re-entrant lock serializes every transaction. A transaction works on a copy
    of the table and only replaces the live table when its function returns.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._bookings: dict[str, Booking] = {}
        self._lock = threading.RLock()
        self._clock = clock
        self._id_factory = id_factory
        self._in_transaction = False
        self._logger = logging.getLogger(__name__)

    def create(self, user_id: str, date: datetime, service_name: str) -> Booking:
        with self._lock:
            now = self._clock()
            booking = Booking(
                id=self._id_factory(),
                user_id=user_id,
                date=as_utc(date),
                service_name=service_name,
                status=BookingStatus.ACTIVE,
                created_at=now,
                updated_at=now,
            )
            self._bookings[booking.id] = booking
            return booking

    def find_by_id(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._bookings.get(booking_id)

    def find_by_user(self, user_id: str) -> list[Booking]:
        with self._lock:
            owned = [b for b in self._bookings.values() if b.user_id == user_id]
        return sorted(owned, key=lambda b: b.date, reverse=True)

    def find_active_upcoming(self, user_id: str, since: datetime, limit: int) -> list[Booking]:
        since = as_utc(since)
        with self._lock:
            upcoming = [
                b
                for b in self._bookings.values()
                if b.user_id == user_id and b.status == BookingStatus.ACTIVE and b.date >= since
            ]
        upcoming.sort(key=lambda b: b.date)
        return upcoming[: max(0, limit)]

    def find_cancelled(self, user_id: str) -> list[Booking]:
        with self._lock:
            cancelled = [b for b in self._bookings.values() if b.user_id == user_id and b.is_cancelled]
        return sorted(cancelled, key=lambda b: (b.cancelled_at, b.created_at, b.id))

    def update_status(
        self,
        booking_id: str,
        status: BookingStatus,
        cancelled_at: datetime | None = None,
    ) -> Booking | None:
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None:
                return None
            updated = current.with_status(
                status,
                as_utc(cancelled_at) if cancelled_at else None,
                self._clock(),
            )
            self._bookings[booking_id] = updated
            return updated

    def delete(self, booking_id: str) -> bool:
        with self._lock:
            return self._bookings.pop(booking_id, None) is not None

    def delete_batch(self, booking_ids: list[str]) -> int:
        with self._lock:
            removed = 0
            for booking_id in booking_ids:
                if self._bookings.pop(booking_id, None) is not None:
                    removed += 1
            return removed

    def lock_user(self, user_id: str) -> None:
        # the store-wide lock held by run_transaction already covers every user
        return None

    def run_transaction(self, fn: Callable[[BookingStorePort], T]) -> T:
        if self._in_transaction:
            return fn(self)

        with self._lock:
            working = copy.copy(self)
            working._bookings = dict(self._bookings)
            working._in_transaction = True
            try:
                result = fn(working)
            except BookingServiceError:
                self._logger.info("Transaction rolled back")
                raise
            except Exception as e:
                self._logger.error("Transaction failed", extra={"error": str(e)})
                raise TransactionFailedError(f"transaction failed: {e}") from e
            self._bookings = working._bookings
            return result


class MemoryLocalUserDirectory(LocalUserDirectoryPort):
    def __init__(self, id_factory: Callable[[], str] = _new_id) -> None:
        self._users: dict[str, LocalUser] = {}
        self._by_external_id: dict[str, str] = {}
        self._lock = threading.Lock()
        self._id_factory = id_factory

    def upsert(self, external_id: str, profile: UserProfile) -> LocalUser:
        with self._lock:
            existing_id = self._by_external_id.get(external_id)
            if existing_id is not None:
                return self._users[existing_id]
            user = LocalUser(
                id=self._id_factory(),
                external_id=external_id,
                email=profile.email,
                display_name=profile.display_name,
            )
            self._users[user.id] = user
            self._by_external_id[external_id] = user.id
            return user

    def find_by_external_id(self, external_id: str) -> LocalUser | None:
        with self._lock:
            user_id = self._by_external_id.get(external_id)
            return self._users.get(user_id) if user_id else None

    def find_by_id(self, user_id: str) -> LocalUser | None:
        with self._lock:
            return self._users.get(user_id)

