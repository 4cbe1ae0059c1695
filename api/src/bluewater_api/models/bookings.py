"""API models for course and trip booking endpoints."""

from datetime import datetime

from pydantic import Field

from bluewater.models import BookingCreate, BookingDetail

from .common import ApiModel


class BookingCreateRequest(ApiModel):
    """Request to create a booking for exactly one course or trip.

    A status sent by the client is accepted for compatibility and ignored:
    new bookings always start pending.
    """

    user_id: int = Field(..., examples=[42])
    course_id: int | None = Field(default=None, examples=[3])
    trip_id: int | None = Field(default=None)
    amount: float | None = Field(default=None, ge=0, examples=[250.0])
    status: str | None = Field(default=None, description="Ignored; bookings start pending")
    booking_date: datetime | None = None

    def to_create(self) -> BookingCreate:
        return BookingCreate(
            user_id=self.user_id,
            course_id=self.course_id,
            trip_id=self.trip_id,
            amount=self.amount,
            booking_date=self.booking_date,
        )


class BookingStatusRequest(ApiModel):
    """Requested status; validated against the state machine by the service."""

    status: str = Field(..., examples=["completed"])


class BookingActionResponse(ApiModel):
    """Result of a status change."""

    message: str
    booking: BookingDetail
