"""Rental booking models for equipment reservations paid via Stripe."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .catalog import CatalogSummary
from .enums import PaymentStatus, RentalBookingStatus


class RentalBooking(BaseModel):
    """A reservation of one rental asset, correlated to a PaymentIntent.

    payment_status only moves pending -> paid (webhook-driven); status only
    moves active -> completed (explicit completion).
    """

    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    rental_id: int
    user_id: int
    payment_intent_id: str | None = Field(
        default=None,
        description="Stripe PaymentIntent ID (pi_xxx); unset until the intent is created",
        examples=["pi_3ABC123DEF456"],
    )
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status: RentalBookingStatus = RentalBookingStatus.ACTIVE
    booking_date: datetime
    created_at: datetime
    updated_at: datetime


class RentalBookingDetail(RentalBooking):
    """Rental booking with a summary of the rented asset."""

    rental: CatalogSummary | None = None


class RentalCheckout(BaseModel):
    """Result of a rental reservation: what the client needs to pay."""

    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)

    booking_id: int
    client_secret: str
    payment_intent_id: str
