from __future__ import annotations

from dataclasses import dataclass

from booking_service.domain.entities.booking import Booking


@dataclass(frozen=True)
class BookingView:
    booking: Booking
    formatted_date: str

    @property
    def id(self) -> str:
        return self.booking.id

    @property
    def status(self) -> str:
        return self.booking.status.value
