"""API routes package.

This package contains FastAPI routers for all REST API endpoints.
Routers are organized by resource:

- bookings: Course and trip bookings
- rental_bookings: Rental reservations and the Stripe webhook
- enrollments: Course enrollments and course payment intents
- courses: Course listing and reordering

All routers are registered in main.py with /api prefix.
"""

from bluewater_api.routes.bookings import router as bookings_router
from bluewater_api.routes.courses import router as courses_router
from bluewater_api.routes.enrollments import router as enrollments_router
from bluewater_api.routes.rental_bookings import router as rental_bookings_router

__all__ = [
    "bookings_router",
    "courses_router",
    "enrollments_router",
    "rental_bookings_router",
]
