"""Rental booking service: reservation, payment coordination and completion.

A rental is a unique physical asset. At most one active rental booking may
exist per rental, and the rental's status mirrors that: rented while an
active booking holds it, available otherwise. Both sides are always written
in one transaction, conditioned on the state the other side expects.

Reservation order:
    1. Reserve the rental and insert the booking (one transaction)
    2. Create the PaymentIntent with an idempotency key
    3. Store the intent id on the booking

If step 2 fails definitively, the reservation is compensated (rental freed,
booking removed). If it times out, the reservation stays: the charge may
still go through and the webhook will settle it.
"""

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any

from boto3.dynamodb.conditions import Key

from bluewater.models import (
    ConflictError,
    ErrorCode,
    GatewayError,
    MarkPaidResult,
    NotFoundError,
    PaymentStatus,
    RentalBooking,
    RentalBookingDetail,
    RentalBookingStatus,
    RentalCheckout,
    RentalStatus,
)
from bluewater.services.stripe_service import to_minor_units
from bluewater.utils.logging import log_payment_operation

if TYPE_CHECKING:
    from .course_service import CourseService
    from .dynamodb import DynamoDBService
    from .stripe_service import StripeService

logger = logging.getLogger(__name__)


def rental_idempotency_key(booking_id: int) -> str:
    """Idempotency key for the PaymentIntent of a rental booking."""
    return f"rental-booking-{booking_id}"


class RentalBookingService:
    """Service for rental bookings paid through Stripe PaymentIntents."""

    RENTALS_TABLE = "rentals"
    RENTAL_BOOKINGS_TABLE = "rental-bookings"

    def __init__(
        self,
        db: "DynamoDBService",
        catalog: "CourseService",
        stripe_service: "StripeService",
        currency: str = "eur",
    ) -> None:
        """Initialize rental booking service.

        Args:
            db: DynamoDB service instance
            catalog: Rental lookups
            stripe_service: Payment gateway adapter
            currency: Currency rentals are charged in
        """
        self.db = db
        self.catalog = catalog
        self.stripe = stripe_service
        self.currency = currency

    def create_rental_booking(self, user_id: int, rental_id: int) -> RentalCheckout:
        """Reserve a rental and open a PaymentIntent for it.

        Args:
            user_id: Authenticated user making the booking
            rental_id: Rental to reserve

        Returns:
            RentalCheckout with the client secret for the payment form

        Raises:
            NotFoundError: If the rental does not exist.
            ConflictError: If the rental is not available (including when
                another request reserved it first).
            GatewayError: If the PaymentIntent could not be created.
        """
        rental = self.catalog.get_rental(rental_id)
        if rental is None:
            raise NotFoundError(ErrorCode.RENTAL_NOT_FOUND)
        if rental.status != RentalStatus.AVAILABLE:
            raise ConflictError(ErrorCode.RENTAL_UNAVAILABLE)

        now = dt.datetime.now(dt.UTC)
        booking = RentalBooking(
            id=self.db.next_id(self.RENTAL_BOOKINGS_TABLE),
            rental_id=rental_id,
            user_id=user_id,
            payment_status=PaymentStatus.PENDING,
            status=RentalBookingStatus.ACTIVE,
            booking_date=now,
            created_at=now,
            updated_at=now,
        )

        reserved = self.db.transact_write(
            [
                self.db.tx_update(
                    self.RENTALS_TABLE,
                    {"rental_id": rental_id},
                    "SET #status = :rented, active_booking_id = :bid, updated_at = :now",
                    {
                        ":rented": RentalStatus.RENTED.value,
                        ":available": RentalStatus.AVAILABLE.value,
                        ":bid": booking.id,
                        ":now": now.isoformat(),
                    },
                    {"#status": "status"},
                    condition_expression="#status = :available",
                ),
                self.db.tx_put(
                    self.RENTAL_BOOKINGS_TABLE,
                    self._booking_to_item(booking),
                    condition_expression="attribute_not_exists(booking_id)",
                ),
            ]
        )
        if not reserved:
            logger.info("Rental %s was reserved concurrently", rental_id)
            raise ConflictError(ErrorCode.RENTAL_UNAVAILABLE)

        log_payment_operation(
            logger,
            "reserve_rental",
            booking_id=booking.id,
            status=RentalStatus.RENTED.value,
            rental_id=rental_id,
            user_id=user_id,
        )

        amount_minor = to_minor_units(rental.price, self.currency)
        try:
            intent = self.stripe.create_payment_intent(
                amount_minor=amount_minor,
                currency=self.currency,
                metadata={
                    "bookingId": str(booking.id),
                    "userId": str(user_id),
                    "rentalId": str(rental_id),
                },
                description=f"Rental: {rental.title}",
                idempotency_key=rental_idempotency_key(booking.id),
            )
        except GatewayError as e:
            if e.outcome_unknown:
                log_payment_operation(
                    logger,
                    "create_payment_intent",
                    booking_id=booking.id,
                    amount_minor=amount_minor,
                    error="outcome unknown; reservation kept for webhook reconciliation",
                )
            else:
                self._release(booking.id, rental_id)
            raise

        stored = self.db.update_item(
            self.RENTAL_BOOKINGS_TABLE,
            {"booking_id": booking.id},
            "SET payment_intent_id = :pi, updated_at = :now",
            {":pi": intent.id, ":now": dt.datetime.now(dt.UTC).isoformat()},
            condition_expression="attribute_exists(booking_id)",
        )
        if stored is None:
            # Row vanished after the intent was issued; the intent will never be paid
            self.stripe.cancel_payment_intent(intent.id)
            raise ConflictError(ErrorCode.RENTAL_UNAVAILABLE)

        if intent.client_secret is None:
            raise GatewayError("Payment processor returned no client secret")

        return RentalCheckout(
            booking_id=booking.id,
            client_secret=intent.client_secret,
            payment_intent_id=intent.id,
        )

    def complete_rental(self, booking_id: int) -> RentalBooking:
        """Finish a rental and return the asset to the available pool.

        Raises:
            NotFoundError: If the rental booking does not exist.
            ConflictError: If it is already completed.
        """
        booking = self.get_rental_booking(booking_id)
        if booking.status == RentalBookingStatus.COMPLETED:
            raise ConflictError(ErrorCode.RENTAL_ALREADY_COMPLETED)

        now = dt.datetime.now(dt.UTC).isoformat()
        completed = self.db.transact_write(
            [
                self.db.tx_update(
                    self.RENTAL_BOOKINGS_TABLE,
                    {"booking_id": booking_id},
                    "SET #status = :completed, updated_at = :now",
                    {
                        ":completed": RentalBookingStatus.COMPLETED.value,
                        ":active": RentalBookingStatus.ACTIVE.value,
                        ":now": now,
                    },
                    {"#status": "status"},
                    condition_expression="#status = :active",
                ),
                self.db.tx_update(
                    self.RENTALS_TABLE,
                    {"rental_id": booking.rental_id},
                    "SET #status = :available, updated_at = :now REMOVE active_booking_id",
                    {
                        ":available": RentalStatus.AVAILABLE.value,
                        ":bid": booking_id,
                        ":now": now,
                    },
                    {"#status": "status"},
                    condition_expression="active_booking_id = :bid",
                ),
            ]
        )
        if not completed:
            # Lost a race with another completion
            raise ConflictError(ErrorCode.RENTAL_ALREADY_COMPLETED)

        logger.info("Rental booking %s completed; rental %s available", booking_id, booking.rental_id)
        return self.get_rental_booking(booking_id)

    def mark_payment_succeeded(
        self, booking_id: int, payment_intent_id: str | None = None
    ) -> MarkPaidResult:
        """Flip payment_status pending -> paid. Safe to apply any number of times.

        Args:
            booking_id: Rental booking from the PaymentIntent metadata
            payment_intent_id: Intent that succeeded; stored if the booking
                does not have it yet (timeout path). A booking holding a
                different intent is left untouched.

        Returns:
            MarkPaidResult.UPDATED, ALREADY_PAID, NOT_FOUND or INTENT_MISMATCH
        """
        values: dict[str, Any] = {
            ":paid": PaymentStatus.PAID.value,
            ":pending": PaymentStatus.PENDING.value,
            ":now": dt.datetime.now(dt.UTC).isoformat(),
        }
        update = "SET payment_status = :paid, updated_at = :now"
        condition = "attribute_exists(booking_id) AND payment_status = :pending"
        if payment_intent_id:
            update += ", payment_intent_id = if_not_exists(payment_intent_id, :pi)"
            condition += " AND (attribute_not_exists(payment_intent_id) OR payment_intent_id = :pi)"
            values[":pi"] = payment_intent_id

        attrs = self.db.update_item(
            self.RENTAL_BOOKINGS_TABLE,
            {"booking_id": booking_id},
            update,
            values,
            condition_expression=condition,
        )
        if attrs is not None:
            log_payment_operation(
                logger,
                "mark_payment_succeeded",
                booking_id=booking_id,
                payment_intent_id=payment_intent_id,
                status=PaymentStatus.PAID.value,
            )
            return MarkPaidResult.UPDATED

        item = self.db.get_item(self.RENTAL_BOOKINGS_TABLE, {"booking_id": booking_id})
        if item is None:
            return MarkPaidResult.NOT_FOUND
        stored_intent = item.get("payment_intent_id")
        if payment_intent_id and stored_intent and stored_intent != payment_intent_id:
            logger.warning(
                "Payment intent %s reported for rental booking %s, which holds intent %s",
                payment_intent_id,
                booking_id,
                stored_intent,
            )
            return MarkPaidResult.INTENT_MISMATCH
        return MarkPaidResult.ALREADY_PAID

    def get_rental_booking(self, booking_id: int) -> RentalBooking:
        """Get a rental booking.

        Raises:
            NotFoundError: If it does not exist.
        """
        item = self.db.get_item(self.RENTAL_BOOKINGS_TABLE, {"booking_id": booking_id})
        if not item:
            raise NotFoundError(ErrorCode.RENTAL_BOOKING_NOT_FOUND)
        return self._item_to_booking(item)

    def list_user_rental_bookings(self, user_id: int) -> list[RentalBookingDetail]:
        """A user's rental bookings, newest first, with the rented asset."""
        items = self.db.query(
            self.RENTAL_BOOKINGS_TABLE,
            Key("user_id").eq(user_id),
            index_name="user_id-index",
            scan_index_forward=False,
        )
        return [
            RentalBookingDetail(
                **booking.model_dump(),
                rental=self.catalog.rental_summary(booking.rental_id),
            )
            for booking in (self._item_to_booking(i) for i in items)
        ]

    def _release(self, booking_id: int, rental_id: int) -> None:
        """Undo a reservation whose payment could not be started."""
        released = self.db.transact_write(
            [
                self.db.tx_update(
                    self.RENTALS_TABLE,
                    {"rental_id": rental_id},
                    "SET #status = :available, updated_at = :now REMOVE active_booking_id",
                    {
                        ":available": RentalStatus.AVAILABLE.value,
                        ":bid": booking_id,
                        ":now": dt.datetime.now(dt.UTC).isoformat(),
                    },
                    {"#status": "status"},
                    condition_expression="active_booking_id = :bid",
                ),
                self.db.tx_delete(
                    self.RENTAL_BOOKINGS_TABLE,
                    {"booking_id": booking_id},
                ),
            ]
        )
        if released:
            log_payment_operation(
                logger, "release_rental", booking_id=booking_id, rental_id=rental_id
            )
        else:
            log_payment_operation(
                logger,
                "release_rental",
                booking_id=booking_id,
                rental_id=rental_id,
                error="compensation failed; rental no longer held by this booking",
            )

    # Conversion helpers

    def _booking_to_item(self, booking: RentalBooking) -> dict[str, Any]:
        """Convert RentalBooking model to DynamoDB item."""
        item: dict[str, Any] = {
            "booking_id": booking.id,
            "rental_id": booking.rental_id,
            "user_id": booking.user_id,
            "payment_status": booking.payment_status.value,
            "status": booking.status.value,
            "booking_date": booking.booking_date.isoformat(),
            "created_at": booking.created_at.isoformat(),
            "updated_at": booking.updated_at.isoformat(),
        }
        if booking.payment_intent_id:
            item["payment_intent_id"] = booking.payment_intent_id
        return item

    def _item_to_booking(self, item: dict[str, Any]) -> RentalBooking:
        """Convert DynamoDB item to RentalBooking model."""
        return RentalBooking(
            id=int(item["booking_id"]),
            rental_id=int(item["rental_id"]),
            user_id=int(item["user_id"]),
            payment_intent_id=item.get("payment_intent_id"),
            payment_status=PaymentStatus(item["payment_status"]),
            status=RentalBookingStatus(item["status"]),
            booking_date=dt.datetime.fromisoformat(item["booking_date"]),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            updated_at=dt.datetime.fromisoformat(item["updated_at"]),
        )
