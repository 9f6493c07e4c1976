from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, TypeVar

from booking_service.domain.entities.booking import Booking, BookingStatus

T = TypeVar("T")


class BookingStorePort(ABC):
    @abstractmethod
    def create(self, user_id: str, date: datetime, service_name: str) -> Booking:
        """Persist a new ACTIVE booking. The store assigns id and audit timestamps."""
        raise NotImplementedError

    @abstractmethod
    def find_by_id(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def find_by_user(self, user_id: str) -> list[Booking]:
        """All bookings of a user, newest date first."""
        raise NotImplementedError

    @abstractmethod
    def find_active_upcoming(self, user_id: str, since: datetime, limit: int) -> list[Booking]:
        """ACTIVE bookings with date >= since, soonest first, at most `limit`."""
        raise NotImplementedError

    @abstractmethod
    def find_cancelled(self, user_id: str) -> list[Booking]:
        """CANCELLED bookings of a user, oldest cancellation first."""
        raise NotImplementedError

    @abstractmethod
    def update_status(
        self,
        booking_id: str,
        status: BookingStatus,
        cancelled_at: datetime | None = None,
    ) -> Booking | None:
        """
        Write a status change. Returns the updated booking, or None if it does not exist.
        Raises ValueError for transitions out of CANCELLED.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, booking_id: str) -> bool:
        """Remove a booking permanently. Returns True if a record was removed."""
        raise NotImplementedError

    @abstractmethod
    def delete_batch(self, booking_ids: list[str]) -> int:
        """Remove several bookings. Returns the number removed."""
        raise NotImplementedError

    @abstractmethod
    def lock_user(self, user_id: str) -> None:
        """
        Serialize writers of one user's bookings until the surrounding transaction ends.
        No-op outside a transaction.
        """
        raise NotImplementedError

    @abstractmethod
    def run_transaction(self, fn: Callable[["BookingStorePort"], T]) -> T:
        """
        Run `fn` with a transaction-scoped store exposing the same operations.

        Requirements:
        - Commit all writes made through the handle if `fn` returns
        - Roll back all of them if `fn` raises
        - BookingServiceError raised by `fn` propagates unchanged after rollback
        - Any other failure surfaces as TransactionFailedError
        - Calling run_transaction on the handle joins the outer transaction
        """
        raise NotImplementedError

    def ping(self) -> bool:
        """Readiness check used by the health endpoints."""
        return True
