"""Stripe payment gateway adapter for PaymentIntents and webhooks.

Provides integration with Stripe using the v8+ StripeClient pattern. Every
call is bounded by a timeout and carries an idempotency key, so retrying a
request never creates a second intent. A connection failure or timeout means
the outcome is unknown: the request may have reached Stripe. Callers get a
GatewayError with outcome_unknown=True and must reconcile through the
webhook rather than assume nothing happened.
"""

import hashlib
import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from typing import Any

import stripe
from stripe import StripeClient

from bluewater.config import Settings, get_settings
from bluewater.models.errors import GatewayError, SignatureError
from bluewater.models.payment import PaymentIntentResult
from bluewater.utils.logging import log_payment_operation

logger = logging.getLogger(__name__)

# Currencies Stripe expects in whole units rather than hundredths
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
        "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
    }
)


def to_minor_units(amount: float | int | Decimal, currency: str = "eur") -> int:
    """Convert a major-unit price to Stripe's minor units.

    Rounds half-up, so 19.995 EUR becomes 2000 cents.

    Args:
        amount: Price in major currency units
        currency: ISO currency code

    Returns:
        Amount in minor units (cents for EUR)
    """
    value = Decimal(str(amount))
    if currency.lower() not in ZERO_DECIMAL_CURRENCIES:
        value = value * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeService:
    """Service for Stripe payment operations.

    Handles:
    - PaymentIntent creation, retrieval and cancellation
    - Webhook signature validation

    Usage:
        stripe_svc = get_stripe_service()
        intent = stripe_svc.create_payment_intent(
            amount_minor=4500,
            currency="eur",
            metadata={"bookingId": "12", "userId": "3", "rentalId": "7"},
            description="Rental: BCD size M",
            idempotency_key="rental-booking-12",
        )
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize Stripe service.

        Args:
            settings: Resolved settings. Defaults to get_settings().
        """
        self._settings = settings or get_settings()
        self._client: StripeClient | None = None

    def _get_client(self) -> StripeClient:
        """Get or create the Stripe client (lazy initialization)."""
        if self._client is None:
            self._client = StripeClient(
                self._settings.stripe_secret_key,
                http_client=stripe.RequestsClient(
                    timeout=self._settings.gateway_timeout_seconds
                ),
                max_network_retries=self._settings.gateway_max_retries,
            )
            logger.info(
                "Stripe client initialized for environment: %s",
                self._settings.environment,
            )
        return self._client

    @staticmethod
    def _gateway_error(operation: str, e: stripe.StripeError) -> GatewayError:
        error_code = getattr(e, "code", None)
        outcome_unknown = isinstance(e, stripe.APIConnectionError)
        logger.error(
            "Stripe %s failed: %s (code: %s, outcome_unknown: %s)",
            operation,
            str(e),
            error_code,
            outcome_unknown,
        )
        return GatewayError(
            f"Failed to {operation}: {e.user_message or e.__class__.__name__}",
            outcome_unknown=outcome_unknown,
            stripe_error_code=error_code,
        )

    def create_payment_intent(
        self,
        *,
        amount_minor: int,
        currency: str,
        metadata: dict[str, str],
        description: str | None = None,
        idempotency_key: str,
    ) -> PaymentIntentResult:
        """Create a PaymentIntent for a one-off charge.

        Args:
            amount_minor: Amount in minor currency units
            currency: ISO currency code
            metadata: Correlation data echoed back on webhook events
            description: Shown on the Stripe dashboard
            idempotency_key: Key that makes retries of this call safe

        Returns:
            PaymentIntentResult with the client secret

        Raises:
            GatewayError: If the call failed (outcome_unknown on timeout).
        """
        client = self._get_client()
        params: dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency,
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": True},
        }
        if description:
            params["description"] = description

        try:
            intent = client.payment_intents.create(
                params=params,  # type: ignore[arg-type]
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as e:
            raise self._gateway_error("create payment intent", e) from e

        log_payment_operation(
            logger,
            "create_payment_intent",
            payment_intent_id=intent.id,
            amount_minor=amount_minor,
            status=intent.status,
            idempotency_key=idempotency_key,
        )
        return PaymentIntentResult(
            id=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
            amount=amount_minor,
            currency=currency,
            metadata=metadata,
        )

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult:
        """Query the current state of a PaymentIntent.

        Raises:
            GatewayError: If the intent cannot be fetched.
        """
        client = self._get_client()
        try:
            intent = client.payment_intents.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            raise self._gateway_error("retrieve payment intent", e) from e

        return PaymentIntentResult(
            id=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
            amount=int(intent.amount),
            currency=intent.currency,
            metadata=dict(intent.metadata or {}),
        )

    def cancel_payment_intent(self, payment_intent_id: str) -> None:
        """Cancel a PaymentIntent that will never be used.

        Best effort: failures are logged, not raised, because cancellation only
        runs as compensation after the primary operation already failed.
        """
        client = self._get_client()
        try:
            client.payment_intents.cancel(payment_intent_id)
            log_payment_operation(
                logger,
                "cancel_payment_intent",
                payment_intent_id=payment_intent_id,
                status="canceled",
            )
        except stripe.StripeError as e:
            log_payment_operation(
                logger,
                "cancel_payment_intent",
                payment_intent_id=payment_intent_id,
                error=str(e),
            )

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Verify a webhook signature over the raw body, then parse the event.

        Args:
            payload: Raw request body bytes, exactly as received
            signature: Stripe-Signature header value

        Returns:
            Parsed Stripe event dictionary

        Raises:
            SignatureError: If the header is missing or does not match.
        """
        if not signature:
            logger.warning("Webhook received without Stripe-Signature header")
            raise SignatureError(message="Missing Stripe-Signature header")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                self._settings.stripe_webhook_secret,
                self._settings.webhook_tolerance_seconds,
            )
        except (UnicodeDecodeError, stripe.SignatureVerificationError) as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise SignatureError() from e

        try:
            event: dict[str, Any] = json.loads(body)
        except json.JSONDecodeError as e:
            logger.warning("Signed webhook payload is not valid JSON: %s", e)
            raise SignatureError(message="Webhook payload is not valid JSON") from e

        logger.info("Webhook signature verified for event: %s", event.get("id"))
        return event

    @staticmethod
    def compute_payload_hash(payload: bytes) -> str:
        """Compute SHA-256 hash of webhook payload for the audit trail.

        Args:
            payload: Raw webhook payload bytes.

        Returns:
            Hex-encoded SHA-256 hash.
        """
        return hashlib.sha256(payload).hexdigest()


@lru_cache(maxsize=1)
def get_stripe_service() -> StripeService:
    """Get the shared StripeService instance (singleton pattern)."""
    return StripeService()
