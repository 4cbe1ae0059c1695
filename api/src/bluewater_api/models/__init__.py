"""API-specific request/response models.

This package contains Pydantic models specific to the REST API layer.
Domain models (Booking, RentalBooking, Enrollment, Course) are in
bluewater.models and are returned directly where their shape fits.

Modules:
- common: Shared response wrappers
- bookings: Course/trip booking requests and responses
- rentals: Rental booking and webhook responses
- enrollments: Enrollment requests
- courses: Course order request and response
"""

__all__: list[str] = []
