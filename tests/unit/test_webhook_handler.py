"""Unit tests for the webhook reconciler.

Tests cover:
- payment_intent.succeeded for rental bookings and enrollments
- Duplicate deliveries (same event id)
- Unhandled event types, unknown bookings and foreign intents
- Enrollment payments that arrive before the enrollment
- Signature failures leave no trace
- Storage failures are not recorded, so Stripe redelivers
"""

from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from bluewater.models import (
    EnrollmentCreate,
    PaymentStatus,
    SignatureError,
    WebhookResult,
)
from bluewater.services.course_service import CourseService
from bluewater.services.dynamodb import DynamoDBService
from bluewater.services.enrollment_service import EnrollmentService
from bluewater.services.rental_service import RentalBookingService
from bluewater.services.stripe_service import StripeService
from bluewater.services.webhook_handler import WebhookHandler


@pytest.fixture
def rentals(
    db: DynamoDBService, catalog: CourseService, stripe_service: StripeService
) -> RentalBookingService:
    return RentalBookingService(db, catalog, stripe_service)


@pytest.fixture
def enrollments(
    db: DynamoDBService, catalog: CourseService, stripe_service: StripeService
) -> EnrollmentService:
    return EnrollmentService(db, catalog, stripe_service)


@pytest.fixture
def handler(
    db: DynamoDBService,
    stripe_service: StripeService,
    rentals: RentalBookingService,
    enrollments: EnrollmentService,
) -> WebhookHandler:
    return WebhookHandler(db, stripe_service, rentals, enrollments)


@pytest.fixture
def deliver(handler: WebhookHandler, sign_webhook: Any, event_factory: Any) -> Any:
    """Sign and hand an event to the handler, as the route does."""

    def _deliver(**event_kwargs: Any) -> Any:
        payload = event_factory(**event_kwargs)
        return handler.handle(payload.encode(), sign_webhook(payload))

    return _deliver


def _events(get_table: Any) -> list[dict[str, Any]]:
    return get_table("payment-webhook-events").scan()["Items"]


class TestRentalPayments:
    def test_marks_rental_booking_paid(
        self, deliver: Any, rentals: RentalBookingService, get_table: Any
    ) -> None:
        checkout = rentals.create_rental_booking(user_id=42, rental_id=1)

        outcome = deliver(
            event_id="evt_paid",
            intent_id=checkout.payment_intent_id,
            metadata={"bookingId": str(checkout.booking_id), "userId": "42", "rentalId": "1"},
        )

        assert outcome.result == WebhookResult.SUCCESS
        assert rentals.get_rental_booking(checkout.booking_id).payment_status == PaymentStatus.PAID
        events = _events(get_table)
        assert len(events) == 1
        assert events[0]["event_id"] == "evt_paid"
        assert events[0]["processing_result"] == "success"
        assert events[0]["booking_id"] == str(checkout.booking_id)
        assert len(events[0]["payload_hash"]) == 64

    def test_duplicate_event_changes_nothing(
        self, deliver: Any, rentals: RentalBookingService, get_table: Any
    ) -> None:
        checkout = rentals.create_rental_booking(user_id=42, rental_id=1)
        metadata = {"bookingId": str(checkout.booking_id)}
        deliver(event_id="evt_dup", metadata=metadata)
        before = rentals.get_rental_booking(checkout.booking_id)

        outcome = deliver(event_id="evt_dup", metadata=metadata)

        assert outcome.result == WebhookResult.DUPLICATE
        assert rentals.get_rental_booking(checkout.booking_id) == before
        assert len(_events(get_table)) == 1

    def test_new_event_for_paid_booking_is_success(
        self, deliver: Any, rentals: RentalBookingService
    ) -> None:
        """A second event id for the same intent is applied as a no-op flip."""
        checkout = rentals.create_rental_booking(user_id=42, rental_id=1)
        metadata = {"bookingId": str(checkout.booking_id)}
        deliver(event_id="evt_first", metadata=metadata)

        outcome = deliver(event_id="evt_second", metadata=metadata)

        assert outcome.result == WebhookResult.SUCCESS
        assert outcome.message is not None
        assert "already_paid" in outcome.message

    def test_unknown_booking_is_anomaly(self, deliver: Any, get_table: Any) -> None:
        outcome = deliver(event_id="evt_orphan", metadata={"bookingId": "9999"})

        assert outcome.result == WebhookResult.ANOMALY
        assert _events(get_table)[0]["processing_result"] == "anomaly"

    def test_malformed_booking_id_is_anomaly(self, deliver: Any) -> None:
        outcome = deliver(metadata={"bookingId": "abc"})

        assert outcome.result == WebhookResult.ANOMALY

    def test_intent_other_than_stored_is_anomaly(
        self, deliver: Any, rentals: RentalBookingService, get_table: Any
    ) -> None:
        checkout = rentals.create_rental_booking(user_id=42, rental_id=1)

        outcome = deliver(
            event_id="evt_foreign",
            intent_id="pi_someone_else",
            metadata={"bookingId": str(checkout.booking_id)},
        )

        assert outcome.result == WebhookResult.ANOMALY
        assert rentals.get_rental_booking(checkout.booking_id).payment_status == PaymentStatus.PENDING
        assert _events(get_table)[0]["processing_result"] == "anomaly"


class TestEnrollmentPayments:
    def test_marks_pending_enrollment_paid(
        self,
        deliver: Any,
        enrollments: EnrollmentService,
        mock_stripe_client: MagicMock,
        course_intent: Any,
    ) -> None:
        mock_stripe_client.payment_intents.retrieve.return_value = course_intent(
            "pi_course", status="processing"
        )
        enrollment = enrollments.create_enrollment(
            EnrollmentCreate(user_id=42, course_id=1, payment_intent_id="pi_course")
        )

        outcome = deliver(
            intent_id="pi_course",
            metadata={"purpose": "enrollment", "courseId": "1", "userId": "42"},
        )

        assert outcome.result == WebhookResult.SUCCESS
        assert enrollments.get_enrollment(enrollment.id).status == PaymentStatus.PAID

    def test_enrollment_not_recorded_yet_is_skipped_unrecorded(
        self, deliver: Any, get_table: Any
    ) -> None:
        outcome = deliver(
            intent_id="pi_early",
            metadata={"purpose": "enrollment", "courseId": "1", "userId": "42"},
        )

        assert outcome.result == WebhookResult.SKIPPED
        assert _events(get_table) == []

    def test_redelivery_reaches_enrollment_recorded_late(
        self,
        deliver: Any,
        enrollments: EnrollmentService,
        mock_stripe_client: MagicMock,
        course_intent: Any,
        get_table: Any,
    ) -> None:
        """Webhook first, then the enrollment while Stripe still says processing."""
        metadata = {"purpose": "enrollment", "courseId": "1", "userId": "42"}
        first = deliver(event_id="evt_race", intent_id="pi_race", metadata=metadata)
        mock_stripe_client.payment_intents.retrieve.return_value = course_intent(
            "pi_race", status="processing"
        )
        enrollment = enrollments.create_enrollment(
            EnrollmentCreate(user_id=42, course_id=1, payment_intent_id="pi_race")
        )
        assert enrollment.status == PaymentStatus.PENDING

        redelivered = deliver(event_id="evt_race", intent_id="pi_race", metadata=metadata)

        assert first.result == WebhookResult.SKIPPED
        assert redelivered.result == WebhookResult.SUCCESS
        assert enrollments.get_enrollment(enrollment.id).status == PaymentStatus.PAID
        assert [e["event_id"] for e in _events(get_table)] == ["evt_race"]
        assert deliver(event_id="evt_race", intent_id="pi_race", metadata=metadata).result == (
            WebhookResult.DUPLICATE
        )

    def test_enrollment_found_without_metadata(
        self,
        deliver: Any,
        enrollments: EnrollmentService,
        mock_stripe_client: MagicMock,
        course_intent: Any,
    ) -> None:
        mock_stripe_client.payment_intents.retrieve.return_value = course_intent(
            "pi_bare", course_id=2, amount=38000, status="processing"
        )
        enrollment = enrollments.create_enrollment(
            EnrollmentCreate(user_id=42, course_id=2, payment_intent_id="pi_bare")
        )

        outcome = deliver(intent_id="pi_bare", metadata={})

        assert outcome.result == WebhookResult.SUCCESS
        assert enrollments.get_enrollment(enrollment.id).status == PaymentStatus.PAID

    def test_no_correlation_is_anomaly(self, deliver: Any) -> None:
        assert deliver(intent_id="pi_unknown", metadata={}).result == WebhookResult.ANOMALY


class TestOtherEvents:
    def test_unhandled_type_is_skipped_and_recorded(
        self, deliver: Any, get_table: Any
    ) -> None:
        outcome = deliver(event_id="evt_failed", event_type="payment_intent.payment_failed")

        assert outcome.result == WebhookResult.SKIPPED
        assert _events(get_table)[0]["event_type"] == "payment_intent.payment_failed"

    def test_skipped_event_is_not_reprocessed(self, deliver: Any) -> None:
        deliver(event_id="evt_charge", event_type="charge.refunded")

        outcome = deliver(event_id="evt_charge", event_type="charge.refunded")

        assert outcome.result == WebhookResult.DUPLICATE


class TestFailures:
    def test_bad_signature_touches_nothing(
        self,
        handler: WebhookHandler,
        rentals: RentalBookingService,
        event_factory: Any,
        sign_webhook: Any,
        get_table: Any,
    ) -> None:
        checkout = rentals.create_rental_booking(user_id=42, rental_id=1)
        payload = event_factory(metadata={"bookingId": str(checkout.booking_id)})
        signature = sign_webhook(payload, secret="whsec_forged")

        with pytest.raises(SignatureError):
            handler.handle(payload.encode(), signature)

        assert rentals.get_rental_booking(checkout.booking_id).payment_status == PaymentStatus.PENDING
        assert _events(get_table) == []

    def test_storage_failure_is_not_recorded(
        self,
        deliver: Any,
        rentals: RentalBookingService,
        get_table: Any,
    ) -> None:
        checkout = rentals.create_rental_booking(user_id=42, rental_id=1)
        metadata = {"bookingId": str(checkout.booking_id)}
        throttled = ClientError(
            {"Error": {"Code": "ProvisionedThroughputExceededException", "Message": "slow down"}},
            "UpdateItem",
        )

        with patch.object(rentals, "mark_payment_succeeded", side_effect=throttled):
            with pytest.raises(ClientError):
                deliver(event_id="evt_retry", metadata=metadata)

        assert _events(get_table) == []

        outcome = deliver(event_id="evt_retry", metadata=metadata)

        assert outcome.result == WebhookResult.SUCCESS
        assert rentals.get_rental_booking(checkout.booking_id).payment_status == PaymentStatus.PAID
