"""Booking model for course and trip reservations."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .catalog import CatalogSummary
from .enums import BookingStatus

# Allowed edges of the booking state machine. completed and cancelled are terminal.
BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Return True if the state machine permits current -> target."""
    return target in BOOKING_TRANSITIONS[current]


class Booking(BaseModel):
    """A reservation linking a user to exactly one course or trip."""

    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)

    id: int = Field(..., description="Booking ID")
    user_id: int = Field(..., description="Owning user")
    course_id: int | None = Field(default=None, description="Booked course")
    trip_id: int | None = Field(default=None, description="Booked trip")
    amount: float | None = Field(default=None, ge=0, description="Quoted amount")
    status: BookingStatus = BookingStatus.PENDING
    booking_date: datetime
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _exactly_one_target(self) -> "Booking":
        if (self.course_id is None) == (self.trip_id is None):
            raise ValueError("exactly one of course_id or trip_id must be set")
        return self


class BookingDetail(Booking):
    """Booking with its related course or trip."""

    course: CatalogSummary | None = None
    trip: CatalogSummary | None = None


class BookingCreate(BaseModel):
    """Data required to create a booking.

    The target check is left to BookingService so that a missing or doubled
    target surfaces as a ValidationError with a stable error code.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: int
    course_id: int | None = None
    trip_id: int | None = None
    amount: float | None = Field(default=None, ge=0)
    booking_date: datetime | None = None
