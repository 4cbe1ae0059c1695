"""Enrollment model for paid course access grants."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .catalog import CatalogSummary
from .enums import PaymentStatus


def enrollment_key(user_id: int, course_id: int) -> str:
    """Uniqueness key for the (user, course) pair."""
    return f"{user_id}#{course_id}"


class Enrollment(BaseModel):
    """Access grant linking a user to a course. Unique per (user_id, course_id)."""

    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    user_id: int
    course_id: int
    payment_method: str | None = None
    amount: float | None = Field(default=None, ge=0)
    currency: str = "eur"
    status: PaymentStatus
    payment_intent_id: str | None = None
    created_at: datetime
    updated_at: datetime


class EnrollmentDetail(Enrollment):
    """Enrollment with its course."""

    course: CatalogSummary | None = None


class EnrollmentCreate(BaseModel):
    """Data required to record an enrollment."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: int
    course_id: int
    payment_method: str | None = None
    amount: float | None = Field(default=None, ge=0)
    currency: str = "eur"
    payment_intent_id: str | None = None


class CoursePaymentIntent(BaseModel):
    """Client secret for paying a course before enrolling."""

    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)

    client_secret: str
    payment_intent_id: str
    amount_minor: int
    currency: str
