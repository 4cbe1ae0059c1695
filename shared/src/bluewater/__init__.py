"""Bluewater booking core.

Domain models and services for the booking-to-payment lifecycle of the
dive center platform: course/trip bookings, equipment rentals paid through
Stripe PaymentIntents, course enrollments and course display ordering.
"""

__version__ = "0.1.0"
