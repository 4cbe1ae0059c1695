"""Rental booking endpoints and the Stripe webhook.

Provides REST endpoints for:
- Reserving a rental and opening its PaymentIntent (principal required)
- Completing a rental (principal required)
- Listing the caller's rental bookings
- Receiving Stripe webhook events

The webhook endpoint does NOT require a principal: it receives signed
payloads from Stripe. It is the only route that reads the raw body, because
the signature covers the exact bytes sent.
"""

from fastapi import APIRouter, Depends, Request
from starlette.status import HTTP_201_CREATED

from bluewater.models import Principal
from bluewater.services.rental_service import RentalBookingService
from bluewater.services.webhook_handler import WebhookHandler
from bluewater.utils.logging import get_logger
from bluewater_api.dependencies import get_rental_booking_service, get_webhook_handler
from bluewater_api.models.common import ErrorResponse
from bluewater_api.models.rentals import (
    MyRentalBookingsResponse,
    RentalBookingList,
    RentalBookingRequest,
    RentalCheckoutResponse,
    RentalCompleteResponse,
    WebhookResponse,
)
from bluewater_api.security import get_principal

logger = get_logger(__name__)

router = APIRouter(tags=["rental-bookings"])


@router.post(
    "/rental-bookings",
    summary="Reserve a rental",
    description="""
Reserve a rental and create the PaymentIntent that pays for it.

**Requires an authenticated principal.**

The rental is held for this booking as soon as the call succeeds. Payment is
confirmed asynchronously by the Stripe webhook.

**Errors:**
- 409 if the rental is already rented, including when another request won the race
- 502 if Stripe rejected the request (nothing is held), or did not answer in
  time (ERR_STRIPE_003: the booking is kept and reconciled by the webhook)
""",
    response_model=RentalCheckoutResponse,
    status_code=HTTP_201_CREATED,
    responses={
        401: {"description": "Principal required", "model": ErrorResponse},
        404: {"description": "Rental not found", "model": ErrorResponse},
        409: {"description": "Rental not available", "model": ErrorResponse},
        502: {"description": "Payment processor failure", "model": ErrorResponse},
    },
)
async def create_rental_booking(
    body: RentalBookingRequest,
    principal: Principal = Depends(get_principal),
    service: RentalBookingService = Depends(get_rental_booking_service),
) -> RentalCheckoutResponse:
    checkout = service.create_rental_booking(principal.user_id, body.rental_id)
    return RentalCheckoutResponse(
        client_secret=checkout.client_secret,
        booking_id=checkout.booking_id,
    )


@router.patch(
    "/rental-bookings/{booking_id}/complete",
    summary="Complete a rental",
    response_model=RentalCompleteResponse,
    responses={
        404: {"description": "Rental booking not found", "model": ErrorResponse},
        409: {"description": "Rental already completed", "model": ErrorResponse},
    },
)
async def complete_rental(
    booking_id: int,
    principal: Principal = Depends(get_principal),
    service: RentalBookingService = Depends(get_rental_booking_service),
) -> RentalCompleteResponse:
    """Mark the rental returned and make the asset available again."""
    service.complete_rental(booking_id)
    logger.info("Rental booking %s completed by user %s", booking_id, principal.user_id)
    return RentalCompleteResponse(message="Rental completed and marked as available")


@router.get(
    "/rental-bookings/my-bookings",
    summary="List my rental bookings",
    response_model=MyRentalBookingsResponse,
)
async def my_rental_bookings(
    principal: Principal = Depends(get_principal),
    service: RentalBookingService = Depends(get_rental_booking_service),
) -> MyRentalBookingsResponse:
    bookings = service.list_user_rental_bookings(principal.user_id)
    return MyRentalBookingsResponse(data=RentalBookingList(bookings=bookings))


@router.post(
    "/rental-bookings/webhook",
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe webhook events. Handles:
- payment_intent.succeeded: marks the rental booking (metadata.bookingId) or
  the enrollment paid

**No principal required** - signature is verified using the Stripe webhook secret.

**Idempotent**: Duplicate events (same event id) return 200 with 'duplicate' result.
Unknown bookings are acknowledged with 'anomaly' so Stripe stops retrying.
""",
    response_model=WebhookResponse,
    responses={
        200: {"description": "Event received and processed (or acknowledged)"},
        400: {"description": "Invalid signature or missing header", "model": ErrorResponse},
    },
)
async def handle_stripe_webhook(
    request: Request,
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> WebhookResponse:
    payload = await request.body()
    outcome = handler.handle(payload, request.headers.get("Stripe-Signature"))
    return WebhookResponse(
        event_id=outcome.event_id,
        event_type=outcome.event_type,
        processing_result=outcome.result.value,
        message=outcome.message,
    )
