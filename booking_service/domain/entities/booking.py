from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


class BookingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Booking:
    id: str
    user_id: str
    date: datetime
    service_name: str
    status: BookingStatus = BookingStatus.ACTIVE
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if (self.status == BookingStatus.CANCELLED) != (self.cancelled_at is not None):
            raise ValueError("cancelled_at must be set if and only if the booking is cancelled")

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED

    def cancel(self, at: datetime) -> "Booking":
        """
        Move ACTIVE -> CANCELLED.
        CANCELLED is terminal: cancelling again returns the booking unchanged.
        """
        if self.is_cancelled:
            return self
        return replace(self, status=BookingStatus.CANCELLED, cancelled_at=at, updated_at=at)

    def with_status(self, status: BookingStatus, cancelled_at: datetime | None, at: datetime) -> "Booking":
        """Apply a status write coming from the store, rejecting un-cancel."""
        status = BookingStatus(status)
        if self.is_cancelled:
            if status != BookingStatus.CANCELLED:
                raise ValueError(f"booking {self.id} is cancelled and cannot become {status.value}")
            return self
        if status == BookingStatus.CANCELLED:
            return self.cancel(cancelled_at or at)
        return replace(self, updated_at=at)
