from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from booking_service.application.dto.booking_view import BookingView


class BookingStatusSchema(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


class CreateBookingRequestSchema(BaseModel):
    date: str = Field(description="ISO 8601 date-time; without an offset it is read as America/Guayaquil time")
    service_name: str


class BookingSchema(BaseModel):
    id: str
    user_id: str
    date: datetime
    formatted_date: str
    service_name: str
    status: BookingStatusSchema
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def from_view(view: BookingView) -> "BookingSchema":
        b = view.booking
        return BookingSchema(
            id=b.id,
            user_id=b.user_id,
            date=b.date,
            formatted_date=view.formatted_date,
            service_name=b.service_name,
            status=BookingStatusSchema(b.status.value),
            cancelled_at=b.cancelled_at,
            created_at=b.created_at,
            updated_at=b.updated_at,
        )


class DeleteBookingResponseSchema(BaseModel):
    deleted: bool
