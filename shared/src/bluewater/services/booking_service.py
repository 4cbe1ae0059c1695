"""Booking service for course and trip reservations.

Bookings follow a small state machine: pending -> completed and
pending -> cancelled. Both targets are terminal. Each transition is a
conditional update on the status the caller observed, so two concurrent
updates cannot both succeed.
"""

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any

from boto3.dynamodb.conditions import Key

from bluewater.models import (
    Booking,
    BookingCreate,
    BookingDetail,
    BookingStatus,
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
    can_transition,
)
from bluewater.services.dynamodb import to_decimal

if TYPE_CHECKING:
    from .course_service import CourseService
    from .dynamodb import DynamoDBService

logger = logging.getLogger(__name__)


def parse_booking_status(value: str) -> BookingStatus:
    """Parse a client-supplied status.

    Raises:
        ValidationError: If value is not one of the booking states.
    """
    try:
        return BookingStatus(value)
    except ValueError as e:
        raise ValidationError(
            ErrorCode.INVALID_STATUS, details={"status": value}
        ) from e


class BookingService:
    """Service for creating bookings and moving them through their lifecycle."""

    BOOKINGS_TABLE = "bookings"

    def __init__(self, db: "DynamoDBService", catalog: "CourseService") -> None:
        """Initialize booking service.

        Args:
            db: DynamoDB service instance
            catalog: Course/trip lookups for target validation and details
        """
        self.db = db
        self.catalog = catalog

    def create_booking(self, data: BookingCreate) -> Booking:
        """Create a pending booking for exactly one course or trip.

        Capacity is not tracked, so no inventory is locked.

        Raises:
            ValidationError: If both or neither of course_id/trip_id is set.
            NotFoundError: If the course or trip does not exist.
        """
        if (data.course_id is None) == (data.trip_id is None):
            raise ValidationError(ErrorCode.BOOKING_TARGET_INVALID)

        if data.course_id is not None and self.catalog.get_course(data.course_id) is None:
            raise NotFoundError(ErrorCode.COURSE_NOT_FOUND)
        if data.trip_id is not None and self.catalog.get_trip(data.trip_id) is None:
            raise NotFoundError(ErrorCode.TRIP_NOT_FOUND)

        now = dt.datetime.now(dt.UTC)
        booking = Booking(
            id=self.db.next_id(self.BOOKINGS_TABLE),
            user_id=data.user_id,
            course_id=data.course_id,
            trip_id=data.trip_id,
            amount=data.amount,
            status=BookingStatus.PENDING,
            booking_date=data.booking_date or now,
            created_at=now,
            updated_at=now,
        )

        self.db.put_item(
            self.BOOKINGS_TABLE,
            self._booking_to_item(booking),
            condition_expression="attribute_not_exists(booking_id)",
        )
        logger.info(
            "Booking %s created for user %s (course=%s, trip=%s)",
            booking.id,
            booking.user_id,
            booking.course_id,
            booking.trip_id,
        )
        return booking

    def get_booking(self, booking_id: int) -> BookingDetail:
        """Get a booking with its course or trip.

        Raises:
            NotFoundError: If the booking does not exist.
        """
        return self._with_details(self._get(booking_id))

    def list_bookings(self) -> list[BookingDetail]:
        """All bookings, newest first."""
        bookings = [self._item_to_booking(i) for i in self.db.scan(self.BOOKINGS_TABLE)]
        bookings.sort(key=lambda b: b.created_at, reverse=True)
        return [self._with_details(b) for b in bookings]

    def list_bookings_for_user(self, user_id: int) -> list[BookingDetail]:
        """A user's bookings, newest first."""
        items = self.db.query(
            self.BOOKINGS_TABLE,
            Key("user_id").eq(user_id),
            index_name="user_id-index",
            scan_index_forward=False,
        )
        return [self._with_details(self._item_to_booking(i)) for i in items]

    def update_booking_status(self, booking_id: int, status: str) -> BookingDetail:
        """Move a booking to a new status if the state machine allows it.

        Args:
            booking_id: Booking to update
            status: Target status as sent by the client

        Raises:
            ValidationError: If status is not a booking state.
            NotFoundError: If the booking does not exist.
            ConflictError: If the transition is not allowed, or the booking
                changed concurrently.
        """
        target = parse_booking_status(status)
        current = self._get(booking_id)

        if not can_transition(current.status, target):
            raise ConflictError(
                ErrorCode.INVALID_TRANSITION,
                f"Cannot change booking from {current.status.value} to {target.value}",
                details={"from": current.status.value, "to": target.value},
            )

        attrs = self.db.update_item(
            self.BOOKINGS_TABLE,
            {"booking_id": booking_id},
            "SET #status = :status, updated_at = :now",
            {
                ":status": target.value,
                ":expected": current.status.value,
                ":now": dt.datetime.now(dt.UTC).isoformat(),
            },
            {"#status": "status"},  # status is a reserved word
            condition_expression="#status = :expected",
        )
        if attrs is None:
            raise ConflictError(
                ErrorCode.INVALID_TRANSITION,
                "Booking was modified concurrently; reload and try again",
            )

        logger.info(
            "Booking %s moved %s -> %s", booking_id, current.status.value, target.value
        )
        return self._with_details(self._item_to_booking(attrs))

    def cancel_booking(self, booking_id: int) -> BookingDetail:
        """Cancel a pending booking."""
        return self.update_booking_status(booking_id, BookingStatus.CANCELLED.value)

    def delete_booking(self, booking_id: int) -> None:
        """Hard-delete a booking regardless of its status.

        Raises:
            NotFoundError: If the booking does not exist.
        """
        if not self.db.delete_item(
            self.BOOKINGS_TABLE,
            {"booking_id": booking_id},
            condition_expression="attribute_exists(booking_id)",
        ):
            raise NotFoundError(ErrorCode.BOOKING_NOT_FOUND)
        logger.info("Booking %s deleted", booking_id)

    def _get(self, booking_id: int) -> Booking:
        item = self.db.get_item(self.BOOKINGS_TABLE, {"booking_id": booking_id})
        if not item:
            raise NotFoundError(ErrorCode.BOOKING_NOT_FOUND)
        return self._item_to_booking(item)

    def _with_details(self, booking: Booking) -> BookingDetail:
        return BookingDetail(
            **booking.model_dump(),
            course=self.catalog.course_summary(booking.course_id),
            trip=self.catalog.trip_summary(booking.trip_id),
        )

    # Conversion helpers

    def _booking_to_item(self, booking: Booking) -> dict[str, Any]:
        """Convert Booking model to DynamoDB item."""
        item: dict[str, Any] = {
            "booking_id": booking.id,
            "user_id": booking.user_id,
            "status": booking.status.value,
            "booking_date": booking.booking_date.isoformat(),
            "created_at": booking.created_at.isoformat(),
            "updated_at": booking.updated_at.isoformat(),
        }
        if booking.course_id is not None:
            item["course_id"] = booking.course_id
        if booking.trip_id is not None:
            item["trip_id"] = booking.trip_id
        if booking.amount is not None:
            item["amount"] = to_decimal(booking.amount)
        return item

    def _item_to_booking(self, item: dict[str, Any]) -> Booking:
        """Convert DynamoDB item to Booking model."""
        return Booking(
            id=int(item["booking_id"]),
            user_id=int(item["user_id"]),
            course_id=int(item["course_id"]) if item.get("course_id") is not None else None,
            trip_id=int(item["trip_id"]) if item.get("trip_id") is not None else None,
            amount=float(item["amount"]) if item.get("amount") is not None else None,
            status=BookingStatus(item["status"]),
            booking_date=dt.datetime.fromisoformat(item["booking_date"]),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            updated_at=dt.datetime.fromisoformat(item["updated_at"]),
        )
