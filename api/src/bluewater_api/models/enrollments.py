"""API models for enrollment endpoints."""

from pydantic import Field

from bluewater.models import EnrollmentCreate

from .common import ApiModel


class EnrollmentCreateRequest(ApiModel):
    """Request to enroll the caller in a course.

    payment_intent_id, when given, is checked at Stripe before the
    enrollment is marked paid.
    """

    course_id: int = Field(..., examples=[3])
    payment_method: str | None = Field(default=None, examples=["card"])
    amount: float | None = Field(default=None, ge=0)
    currency: str = "eur"
    payment_intent_id: str | None = Field(default=None, examples=["pi_3ABC123DEF456"])

    def to_create(self, user_id: int) -> EnrollmentCreate:
        return EnrollmentCreate(
            user_id=user_id,
            course_id=self.course_id,
            payment_method=self.payment_method,
            amount=self.amount,
            currency=self.currency.lower(),
            payment_intent_id=self.payment_intent_id,
        )


class CoursePaymentIntentRequest(ApiModel):
    course_id: int = Field(..., examples=[3])
