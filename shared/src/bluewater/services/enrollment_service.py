"""Enrollment service: course access grants, unique per (user, course).

Uniqueness is enforced by a guard item in the enrollment-keys table written
in the same transaction as the enrollment row. Two concurrent requests for
the same pair cannot both commit. A PaymentIntent that paid for an
enrollment gets its own guard item in enrollment-intents, so it cannot pay
for a second one.
"""

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any

from boto3.dynamodb.conditions import Key

from bluewater.models import (
    ConflictError,
    CoursePaymentIntent,
    Enrollment,
    EnrollmentCreate,
    EnrollmentDetail,
    ErrorCode,
    GatewayError,
    MarkPaidResult,
    NotFoundError,
    PaymentIntentResult,
    PaymentStatus,
    ValidationError,
    enrollment_key,
)
from bluewater.services.dynamodb import to_decimal
from bluewater.services.stripe_service import to_minor_units
from bluewater.utils.logging import log_payment_operation

if TYPE_CHECKING:
    from .course_service import CourseService
    from .dynamodb import DynamoDBService
    from .stripe_service import StripeService

logger = logging.getLogger(__name__)

ENROLLMENT_PURPOSE = "enrollment"


class EnrollmentService:
    """Service for recording and reading course enrollments."""

    ENROLLMENTS_TABLE = "enrollments"
    ENROLLMENT_KEYS_TABLE = "enrollment-keys"
    ENROLLMENT_INTENTS_TABLE = "enrollment-intents"

    def __init__(
        self,
        db: "DynamoDBService",
        catalog: "CourseService",
        stripe_service: "StripeService",
        currency: str = "eur",
    ) -> None:
        self.db = db
        self.catalog = catalog
        self.stripe = stripe_service
        self.currency = currency

    def create_course_payment_intent(self, user_id: int, course_id: int) -> CoursePaymentIntent:
        """Open a PaymentIntent for a course price before enrolling.

        Raises:
            NotFoundError: If the course does not exist.
            ValidationError: If the course is free.
            GatewayError: If Stripe rejects or does not answer the request.
        """
        course = self.catalog.get_course(course_id)
        if course is None:
            raise NotFoundError(ErrorCode.COURSE_NOT_FOUND)

        amount_minor = to_minor_units(course.price, self.currency)
        if amount_minor <= 0:
            raise ValidationError(message="This course is free; enroll without payment")

        # Stripe replays the first response for a reused key, so the key must
        # be unique per checkout attempt
        attempt = dt.datetime.now(dt.UTC).strftime("%Y%m%d%H%M%S%f")
        intent = self.stripe.create_payment_intent(
            amount_minor=amount_minor,
            currency=self.currency,
            metadata={
                "purpose": ENROLLMENT_PURPOSE,
                "courseId": str(course_id),
                "userId": str(user_id),
            },
            description=f"Course: {course.title}",
            idempotency_key=f"enrollment-{user_id}-{course_id}-{attempt}",
        )
        return CoursePaymentIntent(
            client_secret=intent.client_secret or "",
            payment_intent_id=intent.id,
            amount_minor=amount_minor,
            currency=self.currency,
        )

    def create_enrollment(self, data: EnrollmentCreate) -> Enrollment:
        """Record an enrollment.

        With a payment_intent_id the intent is checked at Stripe. It must have
        been opened for this user and course and cover the course price, and
        it pays for one enrollment only. Succeeded means paid; anything else
        stays pending until the webhook confirms it. Without an intent the
        caller is trusted and the enrollment is paid.

        Raises:
            NotFoundError: If the course does not exist.
            ConflictError: If the user is already enrolled in the course, or
                the intent already paid for another enrollment.
            ValidationError: If the intent does not pay for this enrollment.
            GatewayError: If the supplied intent cannot be checked.
        """
        course = self.catalog.get_course(data.course_id)
        if course is None:
            raise NotFoundError(ErrorCode.COURSE_NOT_FOUND)

        key = enrollment_key(data.user_id, data.course_id)
        if self.db.get_item(self.ENROLLMENT_KEYS_TABLE, {"user_course": key}):
            raise ConflictError(ErrorCode.ALREADY_ENROLLED)

        status = PaymentStatus.PAID
        if data.payment_intent_id:
            if self._intent_used(data.payment_intent_id):
                raise ConflictError(ErrorCode.PAYMENT_INTENT_USED)
            intent = self.stripe.retrieve_payment_intent(data.payment_intent_id)
            self._check_intent_pays_for(intent, data, course.price)
            status = PaymentStatus.PAID if intent.succeeded else PaymentStatus.PENDING
        else:
            logger.warning(
                "Enrollment for user %s course %s recorded as paid without a "
                "verifiable payment intent",
                data.user_id,
                data.course_id,
            )

        now = dt.datetime.now(dt.UTC)
        enrollment = Enrollment(
            id=self.db.next_id(self.ENROLLMENTS_TABLE),
            user_id=data.user_id,
            course_id=data.course_id,
            payment_method=data.payment_method,
            amount=data.amount,
            currency=data.currency,
            status=status,
            payment_intent_id=data.payment_intent_id,
            created_at=now,
            updated_at=now,
        )

        writes = [
            self.db.tx_put(
                self.ENROLLMENT_KEYS_TABLE,
                {
                    "user_course": key,
                    "enrollment_id": enrollment.id,
                    "created_at": now.isoformat(),
                },
                condition_expression="attribute_not_exists(user_course)",
            ),
            self.db.tx_put(
                self.ENROLLMENTS_TABLE,
                self._enrollment_to_item(enrollment),
                condition_expression="attribute_not_exists(enrollment_id)",
            ),
        ]
        if enrollment.payment_intent_id:
            writes.append(
                self.db.tx_put(
                    self.ENROLLMENT_INTENTS_TABLE,
                    {
                        "payment_intent_id": enrollment.payment_intent_id,
                        "enrollment_id": enrollment.id,
                        "created_at": now.isoformat(),
                    },
                    condition_expression="attribute_not_exists(payment_intent_id)",
                )
            )

        if not self.db.transact_write(writes):
            if enrollment.payment_intent_id and self._intent_used(enrollment.payment_intent_id):
                raise ConflictError(ErrorCode.PAYMENT_INTENT_USED)
            raise ConflictError(ErrorCode.ALREADY_ENROLLED)

        log_payment_operation(
            logger,
            "record_enrollment",
            payment_intent_id=enrollment.payment_intent_id,
            status=enrollment.status.value,
            enrollment_id=enrollment.id,
            course_id=enrollment.course_id,
        )

        if enrollment.status == PaymentStatus.PENDING and enrollment.payment_intent_id:
            return self._confirm_if_succeeded(enrollment, enrollment.payment_intent_id)
        return enrollment

    def mark_payment_succeeded(self, payment_intent_id: str) -> MarkPaidResult:
        """Flip the enrollment paid by an intent from pending to paid.

        Returns:
            MarkPaidResult.UPDATED, ALREADY_PAID or NOT_FOUND
        """
        items = self.db.query_by_gsi(
            self.ENROLLMENTS_TABLE,
            "payment_intent_id-index",
            "payment_intent_id",
            payment_intent_id,
        )
        if not items:
            return MarkPaidResult.NOT_FOUND
        return self._flip_paid(int(items[0]["enrollment_id"]), payment_intent_id)

    def _flip_paid(self, enrollment_id: int, payment_intent_id: str) -> MarkPaidResult:
        attrs = self.db.update_item(
            self.ENROLLMENTS_TABLE,
            {"enrollment_id": enrollment_id},
            "SET #status = :paid, updated_at = :now",
            {
                ":paid": PaymentStatus.PAID.value,
                ":pending": PaymentStatus.PENDING.value,
                ":now": dt.datetime.now(dt.UTC).isoformat(),
            },
            {"#status": "status"},
            condition_expression="#status = :pending",
        )
        if attrs is None:
            if self.db.get_item(self.ENROLLMENTS_TABLE, {"enrollment_id": enrollment_id}):
                return MarkPaidResult.ALREADY_PAID
            return MarkPaidResult.NOT_FOUND

        log_payment_operation(
            logger,
            "mark_enrollment_paid",
            payment_intent_id=payment_intent_id,
            status=PaymentStatus.PAID.value,
            enrollment_id=enrollment_id,
        )
        return MarkPaidResult.UPDATED

    def _confirm_if_succeeded(self, enrollment: Enrollment, payment_intent_id: str) -> Enrollment:
        """Re-check the intent of a just-committed pending enrollment.

        The succeeded webhook may have arrived before the row existed. The
        row is committed either way, so a gateway failure here leaves it
        pending for the webhook redelivery instead of failing the request.
        """
        try:
            intent = self.stripe.retrieve_payment_intent(payment_intent_id)
        except GatewayError as e:
            logger.warning(
                "Could not re-check payment intent %s for enrollment %s: %s",
                payment_intent_id,
                enrollment.id,
                e.message,
            )
            return enrollment

        if not intent.succeeded:
            return enrollment
        if self._flip_paid(enrollment.id, payment_intent_id) == MarkPaidResult.NOT_FOUND:
            return enrollment
        return enrollment.model_copy(update={"status": PaymentStatus.PAID})

    def _intent_used(self, payment_intent_id: str) -> bool:
        item = self.db.get_item(
            self.ENROLLMENT_INTENTS_TABLE, {"payment_intent_id": payment_intent_id}
        )
        return item is not None

    def _check_intent_pays_for(
        self, intent: PaymentIntentResult, data: EnrollmentCreate, price: float
    ) -> None:
        """Reject an intent opened for another purpose, user, course or price.

        Raises:
            ValidationError: With the mismatching fields in details.
        """
        metadata = intent.metadata
        mismatches: dict[str, Any] = {}
        if metadata.get("purpose") != ENROLLMENT_PURPOSE:
            mismatches["purpose"] = metadata.get("purpose")
        if metadata.get("courseId") != str(data.course_id):
            mismatches["courseId"] = metadata.get("courseId")
        if metadata.get("userId") != str(data.user_id):
            mismatches["userId"] = metadata.get("userId")
        if intent.currency.lower() != self.currency.lower():
            mismatches["currency"] = intent.currency
        elif intent.amount < to_minor_units(price, self.currency):
            mismatches["amount"] = intent.amount

        if mismatches:
            logger.warning(
                "Payment intent %s rejected for user %s course %s: %s",
                intent.id,
                data.user_id,
                data.course_id,
                sorted(mismatches),
            )
            raise ValidationError(
                ErrorCode.PAYMENT_INTENT_MISMATCH,
                details={"payment_intent_id": intent.id, "mismatches": mismatches},
            )

    def get_enrollment(self, enrollment_id: int) -> EnrollmentDetail:
        return self._with_course(self._get(enrollment_id))

    def list_enrollments(self) -> list[EnrollmentDetail]:
        enrollments = [self._item_to_enrollment(i) for i in self.db.scan(self.ENROLLMENTS_TABLE)]
        enrollments.sort(key=lambda e: e.created_at, reverse=True)
        return [self._with_course(e) for e in enrollments]

    def list_user_enrollments(self, user_id: int) -> list[EnrollmentDetail]:
        items = self.db.query(
            self.ENROLLMENTS_TABLE,
            Key("user_id").eq(user_id),
            index_name="user_id-index",
            scan_index_forward=False,
        )
        return [self._with_course(self._item_to_enrollment(i)) for i in items]

    def delete_enrollment(self, enrollment_id: int) -> None:
        """Delete an enrollment and free its (user, course) pair.

        Raises:
            NotFoundError: If the enrollment does not exist.
        """
        enrollment = self._get(enrollment_id)
        deleted = self.db.transact_write(
            [
                self.db.tx_delete(
                    self.ENROLLMENTS_TABLE,
                    {"enrollment_id": enrollment_id},
                    condition_expression="attribute_exists(enrollment_id)",
                ),
                self.db.tx_delete(
                    self.ENROLLMENT_KEYS_TABLE,
                    {"user_course": enrollment_key(enrollment.user_id, enrollment.course_id)},
                ),
            ]
        )
        if not deleted:
            raise NotFoundError(ErrorCode.ENROLLMENT_NOT_FOUND)
        logger.info("Enrollment %s deleted", enrollment_id)

    def _get(self, enrollment_id: int) -> Enrollment:
        item = self.db.get_item(self.ENROLLMENTS_TABLE, {"enrollment_id": enrollment_id})
        if not item:
            raise NotFoundError(ErrorCode.ENROLLMENT_NOT_FOUND)
        return self._item_to_enrollment(item)

    def _with_course(self, enrollment: Enrollment) -> EnrollmentDetail:
        return EnrollmentDetail(
            **enrollment.model_dump(),
            course=self.catalog.course_summary(enrollment.course_id),
        )

    # Conversion helpers

    def _enrollment_to_item(self, enrollment: Enrollment) -> dict[str, Any]:
        item: dict[str, Any] = {
            "enrollment_id": enrollment.id,
            "user_id": enrollment.user_id,
            "course_id": enrollment.course_id,
            "currency": enrollment.currency,
            "status": enrollment.status.value,
            "created_at": enrollment.created_at.isoformat(),
            "updated_at": enrollment.updated_at.isoformat(),
        }
        if enrollment.payment_method:
            item["payment_method"] = enrollment.payment_method
        if enrollment.amount is not None:
            item["amount"] = to_decimal(enrollment.amount)
        # GSI key attributes must be absent rather than null
        if enrollment.payment_intent_id:
            item["payment_intent_id"] = enrollment.payment_intent_id
        return item

    def _item_to_enrollment(self, item: dict[str, Any]) -> Enrollment:
        return Enrollment(
            id=int(item["enrollment_id"]),
            user_id=int(item["user_id"]),
            course_id=int(item["course_id"]),
            payment_method=item.get("payment_method"),
            amount=float(item["amount"]) if item.get("amount") is not None else None,
            currency=item.get("currency", "eur"),
            status=PaymentStatus(item["status"]),
            payment_intent_id=item.get("payment_intent_id"),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            updated_at=dt.datetime.fromisoformat(item["updated_at"]),
        )
