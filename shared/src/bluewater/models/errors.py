"""Error codes and domain exceptions for the booking lifecycle.

Domain errors are raised at the point of detection and propagate unchanged
to the HTTP boundary, where bluewater_api.exceptions maps each class to a
status code and renders an ErrorResponse.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Stable error codes returned to API clients."""

    # Input errors (ERR_VAL_*)
    INVALID_INPUT = "ERR_VAL_001"
    BOOKING_TARGET_INVALID = "ERR_VAL_002"
    INVALID_STATUS = "ERR_VAL_003"
    INVALID_COURSE_ORDER = "ERR_VAL_004"
    PAYMENT_INTENT_MISMATCH = "ERR_VAL_005"

    # Missing entities (ERR_NF_*)
    BOOKING_NOT_FOUND = "ERR_NF_001"
    COURSE_NOT_FOUND = "ERR_NF_002"
    TRIP_NOT_FOUND = "ERR_NF_003"
    RENTAL_NOT_FOUND = "ERR_NF_004"
    RENTAL_BOOKING_NOT_FOUND = "ERR_NF_005"
    ENROLLMENT_NOT_FOUND = "ERR_NF_006"

    # State precondition violations (ERR_CONFLICT_*)
    RENTAL_UNAVAILABLE = "ERR_CONFLICT_001"
    ALREADY_ENROLLED = "ERR_CONFLICT_002"
    INVALID_TRANSITION = "ERR_CONFLICT_003"
    RENTAL_ALREADY_COMPLETED = "ERR_CONFLICT_004"
    PAYMENT_INTENT_USED = "ERR_CONFLICT_005"

    # Stripe/Payment errors (ERR_STRIPE_*)
    INVALID_WEBHOOK_SIGNATURE = "ERR_STRIPE_001"
    PAYMENT_GATEWAY_ERROR = "ERR_STRIPE_002"
    PAYMENT_OUTCOME_UNKNOWN = "ERR_STRIPE_003"

    # Access errors (ERR_AUTH_*)
    AUTH_REQUIRED = "ERR_AUTH_001"
    FORBIDDEN = "ERR_AUTH_002"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_INPUT: "The request is missing or has malformed fields",
    ErrorCode.BOOKING_TARGET_INVALID: "Exactly one of courseId or tripId must be provided",
    ErrorCode.INVALID_STATUS: "Invalid status. Must be one of: pending, completed, cancelled",
    ErrorCode.INVALID_COURSE_ORDER: "Course order must be a list of numeric course IDs",
    ErrorCode.PAYMENT_INTENT_MISMATCH: "This payment does not cover this course for this user",
    ErrorCode.BOOKING_NOT_FOUND: "Booking not found",
    ErrorCode.COURSE_NOT_FOUND: "Course not found",
    ErrorCode.TRIP_NOT_FOUND: "Trip not found",
    ErrorCode.RENTAL_NOT_FOUND: "Rental not found",
    ErrorCode.RENTAL_BOOKING_NOT_FOUND: "Rental booking not found",
    ErrorCode.ENROLLMENT_NOT_FOUND: "Enrollment not found",
    ErrorCode.RENTAL_UNAVAILABLE: "This rental is not available",
    ErrorCode.ALREADY_ENROLLED: "Already enrolled in this course",
    ErrorCode.INVALID_TRANSITION: "This status change is not allowed",
    ErrorCode.RENTAL_ALREADY_COMPLETED: "Rental already completed",
    ErrorCode.PAYMENT_INTENT_USED: "This payment was already used for an enrollment",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.PAYMENT_GATEWAY_ERROR: "Payment processor request failed",
    ErrorCode.PAYMENT_OUTCOME_UNKNOWN: "Payment processor did not respond in time",
    ErrorCode.AUTH_REQUIRED: "Authentication required to perform this action",
    ErrorCode.FORBIDDEN: "You are not allowed to perform this action",
}

ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.INVALID_INPUT: "Fix the highlighted fields and submit again",
    ErrorCode.BOOKING_TARGET_INVALID: "Choose either a course or a trip",
    ErrorCode.INVALID_STATUS: "Use pending, completed or cancelled",
    ErrorCode.INVALID_COURSE_ORDER: "Send the full list of course IDs as numbers",
    ErrorCode.PAYMENT_INTENT_MISMATCH: "Start a new payment for this course",
    ErrorCode.BOOKING_NOT_FOUND: "Verify the booking ID",
    ErrorCode.COURSE_NOT_FOUND: "Pick a course from the current catalog",
    ErrorCode.TRIP_NOT_FOUND: "Pick a trip from the current catalog",
    ErrorCode.RENTAL_NOT_FOUND: "Pick a rental from the current catalog",
    ErrorCode.RENTAL_BOOKING_NOT_FOUND: "Verify the rental booking ID",
    ErrorCode.ENROLLMENT_NOT_FOUND: "Verify the enrollment ID",
    ErrorCode.RENTAL_UNAVAILABLE: "Choose another rental item",
    ErrorCode.ALREADY_ENROLLED: "Open the course from your enrolled courses",
    ErrorCode.INVALID_TRANSITION: "Reload the booking to see its current status",
    ErrorCode.RENTAL_ALREADY_COMPLETED: "No action needed",
    ErrorCode.PAYMENT_INTENT_USED: "Start a new payment for this course",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify webhook secret configuration",
    ErrorCode.PAYMENT_GATEWAY_ERROR: "Try again later",
    ErrorCode.PAYMENT_OUTCOME_UNKNOWN: "Check your bookings before retrying; the payment may still complete",
    ErrorCode.AUTH_REQUIRED: "Sign in and try again",
    ErrorCode.FORBIDDEN: "Ask an administrator for access",
}


class ErrorResponse(BaseModel):
    """Standard error body returned by the API."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: str
    message: str
    recovery: str
    details: Optional[dict[str, Any]] = None


class DomainError(Exception):
    """Base class for errors raised by booking operations.

    Attributes:
        code: Stable ErrorCode
        message: Human-readable message (defaults to ERROR_MESSAGES[code])
        recovery: Hint for the caller
        details: Optional structured context
    """

    default_code: ErrorCode = ErrorCode.INVALID_INPUT

    def __init__(
        self,
        code: Optional[ErrorCode] = None,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.code = code or self.default_code
        self.message = message or ERROR_MESSAGES[self.code]
        self.recovery = ERROR_RECOVERY[self.code]
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse body."""
        return ErrorResponse(
            error_code=self.code.value,
            message=self.message,
            recovery=self.recovery,
            details=self.details,
        )


class ValidationError(DomainError):
    """Malformed or missing input."""

    default_code = ErrorCode.INVALID_INPUT


class NotFoundError(DomainError):
    """A referenced entity does not exist."""

    default_code = ErrorCode.BOOKING_NOT_FOUND


class ConflictError(DomainError):
    """A state precondition was violated (unavailable, duplicate, terminal)."""

    default_code = ErrorCode.INVALID_TRANSITION


class SignatureError(DomainError):
    """Webhook signature could not be verified."""

    default_code = ErrorCode.INVALID_WEBHOOK_SIGNATURE


class GatewayError(DomainError):
    """The payment processor call failed.

    outcome_unknown is True when the request may have reached Stripe
    (timeout, connection reset); callers must reconcile via webhook rather
    than assume the charge did not happen.
    """

    default_code = ErrorCode.PAYMENT_GATEWAY_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        outcome_unknown: bool = False,
        stripe_error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        code = (
            ErrorCode.PAYMENT_OUTCOME_UNKNOWN
            if outcome_unknown
            else ErrorCode.PAYMENT_GATEWAY_ERROR
        )
        super().__init__(code, message, details)
        self.outcome_unknown = outcome_unknown
        self.stripe_error_code = stripe_error_code


class AuthError(DomainError):
    """Missing principal (401) or insufficient role (403)."""

    default_code = ErrorCode.AUTH_REQUIRED


class ConfigurationError(Exception):
    """Required configuration is missing. Raised at startup only."""
