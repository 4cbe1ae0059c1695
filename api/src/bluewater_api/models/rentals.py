"""API models for rental booking endpoints."""

from pydantic import Field

from bluewater.models import RentalBookingDetail

from .common import ApiModel


class RentalBookingRequest(ApiModel):
    """Request to reserve a rental. The user comes from the principal."""

    rental_id: int = Field(..., examples=[7])


class RentalCheckoutResponse(ApiModel):
    """What the client needs to confirm the payment."""

    status: str = "success"
    client_secret: str
    booking_id: int


class RentalCompleteResponse(ApiModel):
    status: str = "success"
    message: str


class RentalBookingList(ApiModel):
    bookings: list[RentalBookingDetail]


class MyRentalBookingsResponse(ApiModel):
    status: str = "success"
    data: RentalBookingList


class WebhookResponse(ApiModel):
    """Acknowledgement returned to Stripe.

    Any 2xx stops redelivery, so anomalies are acknowledged too.
    """

    received: bool = True
    event_id: str | None = None
    event_type: str | None = None
    processing_result: str = Field(..., examples=["success", "duplicate", "skipped", "anomaly"])
    message: str | None = None
