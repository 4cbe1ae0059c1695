"""Payment webhook event models for idempotency and auditing."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import WebhookResult


class PaymentWebhookEvent(BaseModel):
    """Log of a received Stripe webhook event.

    Used for:
    - Idempotency: an event id is processed at most once
    - Auditing: track all webhook deliveries
    - Debugging: investigate payment reconciliation issues
    """

    model_config = ConfigDict(strict=True)

    event_id: str = Field(
        ...,
        description="Stripe event ID (evt_xxx)",
        examples=["evt_1ABC123DEF456"],
    )
    event_type: str = Field(
        ...,
        description="Stripe event type",
        examples=["payment_intent.succeeded"],
    )
    processed_at: datetime = Field(..., description="When the event was processed")
    payload_hash: str = Field(..., description="SHA-256 hash of the raw payload")
    payment_intent_id: str | None = None
    booking_id: str | None = Field(
        default=None,
        description="Correlated booking ID from metadata",
    )
    processing_result: WebhookResult = WebhookResult.SUCCESS
    message: str | None = None


class WebhookOutcome(BaseModel):
    """What the reconciler did with one delivery."""

    model_config = ConfigDict(strict=True)

    event_id: str
    event_type: str
    result: WebhookResult
    message: str | None = None
