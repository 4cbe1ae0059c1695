"""Payment intent snapshot returned by the gateway adapter."""

from pydantic import BaseModel, ConfigDict, Field


class PaymentIntentResult(BaseModel):
    """The parts of a Stripe PaymentIntent the booking lifecycle keeps.

    The intent itself lives at Stripe; only its id, amount and currency are
    stored on bookings and enrollments.
    """

    model_config = ConfigDict(strict=True)

    id: str = Field(..., description="Stripe PaymentIntent ID (pi_xxx)")
    client_secret: str | None = Field(
        default=None, description="Secret the client confirms the payment with"
    )
    status: str = Field(..., examples=["requires_payment_method", "succeeded"])
    amount: int = Field(..., ge=0, description="Amount in minor currency units")
    currency: str
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"
