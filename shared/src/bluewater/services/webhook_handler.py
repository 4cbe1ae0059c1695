"""Webhook handler for reconciling Stripe payment events.

Provides business logic for handling webhook events separate from
HTTP routing concerns. This enables:
- Unit testing without HTTP overhead
- Reuse across different transport mechanisms

Stripe delivers at least once. Every processed event id is recorded, so a
redelivery is answered without touching state. An event is recorded only
after its state change committed: if storage fails, the exception
propagates, Stripe gets a 5xx and redelivers. A succeeded payment for an
enrollment that does not exist yet is not recorded either.
"""

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any

from bluewater.models import (
    MarkPaidResult,
    PaymentWebhookEvent,
    WebhookOutcome,
    WebhookResult,
)
from bluewater.services.enrollment_service import ENROLLMENT_PURPOSE
from bluewater.services.stripe_service import StripeService
from bluewater.utils.logging import log_webhook_event

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService
    from .enrollment_service import EnrollmentService
    from .rental_service import RentalBookingService

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"


class WebhookHandler:
    """Handler for processing Stripe webhook events.

    Verifies signatures, deduplicates by event id and routes
    payment_intent.succeeded to the rental or enrollment payment flip.
    """

    WEBHOOK_EVENTS_TABLE = "payment-webhook-events"

    def __init__(
        self,
        db: "DynamoDBService",
        stripe_service: StripeService,
        rentals: "RentalBookingService",
        enrollments: "EnrollmentService",
    ) -> None:
        self._db = db
        self._stripe = stripe_service
        self._rentals = rentals
        self._enrollments = enrollments

    def handle(self, payload: bytes, signature: str | None) -> WebhookOutcome:
        """Verify, deduplicate and apply one webhook delivery.

        Args:
            payload: Raw request body, unparsed
            signature: Stripe-Signature header

        Returns:
            WebhookOutcome describing what was done

        Raises:
            SignatureError: If the signature does not verify. No state is read
                or written in that case.
        """
        event = self._stripe.verify_webhook_signature(payload, signature)
        event_id = str(event.get("id", ""))
        event_type = str(event.get("type", ""))

        if self.is_event_already_processed(event_id):
            log_webhook_event(logger, event_type, event_id, result=WebhookResult.DUPLICATE.value)
            return WebhookOutcome(
                event_id=event_id,
                event_type=event_type,
                result=WebhookResult.DUPLICATE,
                message="Event already processed",
            )

        intent: dict[str, Any] = event.get("data", {}).get("object", {}) or {}
        metadata: dict[str, Any] = intent.get("metadata") or {}
        payment_intent_id = intent.get("id")

        if event_type == PAYMENT_SUCCEEDED:
            result, booking_ref, message = self.process_payment_succeeded(
                payment_intent_id, metadata
            )
        else:
            result, booking_ref, message = (
                WebhookResult.SKIPPED,
                metadata.get("bookingId"),
                f"Unhandled event type: {event_type}",
            )

        if event_type == PAYMENT_SUCCEEDED and result == WebhookResult.SKIPPED:
            # Left unrecorded so a redelivery reaches the enrollment once it exists
            log_webhook_event(
                logger, event_type, event_id, result=result.value, payment_intent_id=payment_intent_id
            )
            return WebhookOutcome(
                event_id=event_id, event_type=event_type, result=result, message=message
            )

        self.log_event(
            PaymentWebhookEvent(
                event_id=event_id,
                event_type=event_type,
                processed_at=dt.datetime.now(dt.UTC),
                payload_hash=StripeService.compute_payload_hash(payload),
                payment_intent_id=payment_intent_id,
                booking_id=booking_ref,
                processing_result=result,
                message=message,
            )
        )
        log_webhook_event(
            logger,
            event_type,
            event_id,
            booking_id=booking_ref,
            result=result.value,
            payment_intent_id=payment_intent_id,
        )
        return WebhookOutcome(
            event_id=event_id, event_type=event_type, result=result, message=message
        )

    def process_payment_succeeded(
        self, payment_intent_id: str | None, metadata: dict[str, Any]
    ) -> tuple[WebhookResult, str | None, str | None]:
        """Apply payment_intent.succeeded to the booking it pays for.

        Returns:
            Tuple of (result, booking reference, message)
        """
        booking_ref = metadata.get("bookingId")
        if booking_ref is not None:
            try:
                booking_id = int(booking_ref)
            except (TypeError, ValueError):
                return WebhookResult.ANOMALY, str(booking_ref), "Malformed bookingId in metadata"

            outcome = self._rentals.mark_payment_succeeded(booking_id, payment_intent_id)
            if outcome == MarkPaidResult.NOT_FOUND:
                return WebhookResult.ANOMALY, str(booking_ref), f"Rental booking {booking_id} not found"
            if outcome == MarkPaidResult.INTENT_MISMATCH:
                return (
                    WebhookResult.ANOMALY,
                    str(booking_ref),
                    f"Rental booking {booking_id} is paid by a different intent",
                )
            return WebhookResult.SUCCESS, str(booking_ref), f"Rental booking {outcome.value}"

        if payment_intent_id and (
            metadata.get("purpose") == ENROLLMENT_PURPOSE or metadata.get("courseId")
        ):
            outcome = self._enrollments.mark_payment_succeeded(payment_intent_id)
            if outcome == MarkPaidResult.NOT_FOUND:
                # The client has not recorded the enrollment yet; recording it
                # re-checks the intent, and this event stays unrecorded
                return WebhookResult.SKIPPED, None, "No enrollment recorded for this intent yet"
            return WebhookResult.SUCCESS, None, f"Enrollment {outcome.value}"

        if payment_intent_id:
            outcome = self._enrollments.mark_payment_succeeded(payment_intent_id)
            if outcome != MarkPaidResult.NOT_FOUND:
                return WebhookResult.SUCCESS, None, f"Enrollment {outcome.value}"

        return WebhookResult.ANOMALY, None, "No booking or enrollment matches this payment"

    def is_event_already_processed(self, event_id: str) -> bool:
        """Check if webhook event was already processed (idempotency).

        Args:
            event_id: Stripe event ID

        Returns:
            True if event was already processed
        """
        existing = self._db.get_item(self.WEBHOOK_EVENTS_TABLE, {"event_id": event_id})
        return existing is not None

    def log_event(self, event: PaymentWebhookEvent) -> None:
        """Record a processed event for idempotency and the audit trail."""
        item: dict[str, Any] = {
            "event_id": event.event_id,
            "event_type": event.event_type,
            "processed_at": event.processed_at.isoformat(),
            "payload_hash": event.payload_hash,
            "processing_result": event.processing_result.value,
        }
        if event.payment_intent_id:
            item["payment_intent_id"] = event.payment_intent_id
        if event.booking_id:
            item["booking_id"] = event.booking_id
        if event.message:
            item["message"] = event.message

        # A concurrent delivery of the same event may have recorded it first;
        # both applied idempotent flips, so either record is correct
        if not self._db.put_item(
            self.WEBHOOK_EVENTS_TABLE, item, condition_expression="attribute_not_exists(event_id)"
        ):
            logger.info("Webhook event %s was recorded concurrently", event.event_id)
