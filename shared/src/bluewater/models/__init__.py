"""Domain models for the booking-to-payment lifecycle."""

from .auth import Principal
from .booking import BOOKING_TRANSITIONS, Booking, BookingCreate, BookingDetail, can_transition
from .catalog import CatalogSummary, Course, Rental, Trip
from .enrollment import (
    CoursePaymentIntent,
    Enrollment,
    EnrollmentCreate,
    EnrollmentDetail,
    enrollment_key,
)
from .enums import (
    BookingStatus,
    MarkPaidResult,
    PaymentStatus,
    RentalBookingStatus,
    RentalStatus,
    UserRole,
    WebhookResult,
)
from .errors import (
    AuthError,
    ConfigurationError,
    ConflictError,
    DomainError,
    ErrorCode,
    ErrorResponse,
    GatewayError,
    NotFoundError,
    SignatureError,
    ValidationError,
)
from .payment import PaymentIntentResult
from .rental import RentalBooking, RentalBookingDetail, RentalCheckout
from .webhook import PaymentWebhookEvent, WebhookOutcome

__all__ = [
    "AuthError",
    "BOOKING_TRANSITIONS",
    "Booking",
    "BookingCreate",
    "BookingDetail",
    "BookingStatus",
    "CatalogSummary",
    "ConfigurationError",
    "ConflictError",
    "Course",
    "CoursePaymentIntent",
    "DomainError",
    "Enrollment",
    "EnrollmentCreate",
    "EnrollmentDetail",
    "ErrorCode",
    "ErrorResponse",
    "GatewayError",
    "MarkPaidResult",
    "NotFoundError",
    "PaymentIntentResult",
    "PaymentStatus",
    "PaymentWebhookEvent",
    "Principal",
    "Rental",
    "RentalBooking",
    "RentalBookingDetail",
    "RentalBookingStatus",
    "RentalCheckout",
    "RentalStatus",
    "SignatureError",
    "Trip",
    "UserRole",
    "ValidationError",
    "WebhookOutcome",
    "WebhookResult",
    "can_transition",
    "enrollment_key",
]
