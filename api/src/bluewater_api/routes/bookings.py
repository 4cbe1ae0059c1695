"""Booking endpoints for course and trip reservations.

Provides REST endpoints for:
- Creating a booking (course or trip)
- Listing and reading bookings with their course/trip
- Status changes through the booking state machine
- Hard deletion

These routes are not behind the principal check; callers pass user_id
explicitly, as the dashboard and the public booking form both do.
"""

from fastapi import APIRouter, Depends
from starlette.status import HTTP_201_CREATED

from bluewater.models import Booking, BookingDetail
from bluewater.services.booking_service import BookingService
from bluewater_api.dependencies import get_booking_service
from bluewater_api.models.bookings import (
    BookingActionResponse,
    BookingCreateRequest,
    BookingStatusRequest,
)
from bluewater_api.models.common import ErrorResponse, MessageResponse

router = APIRouter(tags=["bookings"])


@router.post(
    "/bookings",
    summary="Create booking",
    description="""
Create a pending booking for exactly one course or trip.

**Notes:**
- Exactly one of courseId or tripId is required
- A status in the body is ignored; new bookings are always pending
- bookingDate defaults to now
""",
    response_model=Booking,
    status_code=HTTP_201_CREATED,
    responses={
        400: {"description": "Missing or doubled target", "model": ErrorResponse},
        404: {"description": "Course or trip not found", "model": ErrorResponse},
    },
)
async def create_booking(
    body: BookingCreateRequest,
    service: BookingService = Depends(get_booking_service),
) -> Booking:
    return service.create_booking(body.to_create())


@router.get(
    "/bookings",
    summary="List bookings",
    response_model=list[BookingDetail],
)
async def list_bookings(
    service: BookingService = Depends(get_booking_service),
) -> list[BookingDetail]:
    """All bookings, newest first."""
    return service.list_bookings()


@router.get(
    "/bookings/user/{user_id}",
    summary="List a user's bookings",
    response_model=list[BookingDetail],
)
async def list_user_bookings(
    user_id: int,
    service: BookingService = Depends(get_booking_service),
) -> list[BookingDetail]:
    return service.list_bookings_for_user(user_id)


@router.get(
    "/bookings/{booking_id}",
    summary="Get booking",
    response_model=BookingDetail,
    responses={404: {"description": "Booking not found", "model": ErrorResponse}},
)
async def get_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
) -> BookingDetail:
    return service.get_booking(booking_id)


@router.patch(
    "/bookings/{booking_id}/cancel",
    summary="Cancel booking",
    response_model=BookingActionResponse,
    responses={
        404: {"description": "Booking not found", "model": ErrorResponse},
        409: {"description": "Booking is already completed or cancelled", "model": ErrorResponse},
    },
)
async def cancel_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
) -> BookingActionResponse:
    booking = service.cancel_booking(booking_id)
    return BookingActionResponse(message="Booking cancelled successfully", booking=booking)


@router.put(
    "/bookings/status/{booking_id}",
    summary="Update booking status",
    description="""
Move a booking to a new status.

Allowed transitions: pending → completed, pending → cancelled.
Completed and cancelled bookings are final.
""",
    response_model=BookingActionResponse,
    responses={
        400: {"description": "Unknown status value", "model": ErrorResponse},
        404: {"description": "Booking not found", "model": ErrorResponse},
        409: {"description": "Transition not allowed", "model": ErrorResponse},
    },
)
async def update_booking_status(
    booking_id: int,
    body: BookingStatusRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingActionResponse:
    booking = service.update_booking_status(booking_id, body.status)
    return BookingActionResponse(message="Booking status updated successfully", booking=booking)


@router.delete(
    "/bookings/{booking_id}",
    summary="Delete booking",
    response_model=MessageResponse,
    responses={404: {"description": "Booking not found", "model": ErrorResponse}},
)
async def delete_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
) -> MessageResponse:
    """Hard delete, regardless of status."""
    service.delete_booking(booking_id)
    return MessageResponse(message="Booking deleted successfully")
