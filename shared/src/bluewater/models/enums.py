"""Enumeration types for Bluewater data models."""

from enum import Enum


class BookingStatus(str, Enum):
    """Status of a course/trip booking."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RentalStatus(str, Enum):
    """Availability of a physical rental asset."""

    AVAILABLE = "available"
    RENTED = "rented"


class RentalBookingStatus(str, Enum):
    """Lifecycle of a rental booking."""

    ACTIVE = "active"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    """Payment state of a rental booking or enrollment."""

    PENDING = "pending"
    PAID = "paid"


class UserRole(str, Enum):
    """Role carried by the authenticated principal."""

    USER = "user"
    STAFF = "staff"
    ADMIN = "admin"


class WebhookResult(str, Enum):
    """Outcome recorded for a processed webhook event."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    ANOMALY = "anomaly"


class MarkPaidResult(str, Enum):
    """Outcome of an idempotent pending -> paid flip."""

    UPDATED = "updated"
    ALREADY_PAID = "already_paid"
    NOT_FOUND = "not_found"
    INTENT_MISMATCH = "intent_mismatch"
