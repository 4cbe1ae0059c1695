"""FastAPI dependency injection providers for shared services.

This module provides factory functions for service instances using @lru_cache
to ensure singleton behavior. Services are lazily instantiated and cached.

Usage in routes:
    from bluewater_api.dependencies import get_booking_service

    @router.get("/bookings")
    async def list_bookings(
        bookings: BookingService = Depends(get_booking_service),
    ):
        ...

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        └── CourseService
                ├── BookingService
                ├── RentalBookingService ── StripeService
                └── EnrollmentService ───── StripeService
                        └── WebhookHandler (+ RentalBookingService)

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from bluewater.config import get_settings
from bluewater.services.booking_service import BookingService
from bluewater.services.course_service import CourseService
from bluewater.services.dynamodb import get_dynamodb_service, reset_dynamodb_service
from bluewater.services.enrollment_service import EnrollmentService
from bluewater.services.rental_service import RentalBookingService
from bluewater.services.stripe_service import get_stripe_service
from bluewater.services.webhook_handler import WebhookHandler


@lru_cache
def get_course_service() -> CourseService:
    """Get cached CourseService instance."""
    return CourseService(db=get_dynamodb_service())


@lru_cache
def get_booking_service() -> BookingService:
    """Get cached BookingService instance."""
    return BookingService(db=get_dynamodb_service(), catalog=get_course_service())


@lru_cache
def get_rental_booking_service() -> RentalBookingService:
    """Get cached RentalBookingService instance.

    Returns:
        RentalBookingService charging in the configured currency.
    """
    return RentalBookingService(
        db=get_dynamodb_service(),
        catalog=get_course_service(),
        stripe_service=get_stripe_service(),
        currency=get_settings().currency,
    )


@lru_cache
def get_enrollment_service() -> EnrollmentService:
    """Get cached EnrollmentService instance."""
    return EnrollmentService(
        db=get_dynamodb_service(),
        catalog=get_course_service(),
        stripe_service=get_stripe_service(),
        currency=get_settings().currency,
    )


@lru_cache
def get_webhook_handler() -> WebhookHandler:
    """Get cached WebhookHandler instance."""
    return WebhookHandler(
        db=get_dynamodb_service(),
        stripe_service=get_stripe_service(),
        rentals=get_rental_booking_service(),
        enrollments=get_enrollment_service(),
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the underlying DynamoDB and Stripe singletons.
    """
    get_course_service.cache_clear()
    get_booking_service.cache_clear()
    get_rental_booking_service.cache_clear()
    get_enrollment_service.cache_clear()
    get_webhook_handler.cache_clear()
    get_stripe_service.cache_clear()

    reset_dynamodb_service()
