"""Pytest configuration and fixtures for Bluewater booking backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (every table from bluewater.services.tables)
- Sample catalog data (courses, trips, rentals)
- A StripeClient mock and signed webhook payloads
"""

import hashlib
import hmac
import json
import os
import time
from decimal import Decimal
from typing import Any, Callable, Generator
from unittest.mock import MagicMock, patch

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-bluewater")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_fake_key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from bluewater.config import Settings, reset_settings  # noqa: E402
from bluewater.services.course_service import CourseService  # noqa: E402
from bluewater.services.dynamodb import DynamoDBService, reset_dynamodb_service  # noqa: E402
from bluewater.services.enrollment_service import ENROLLMENT_PURPOSE  # noqa: E402
from bluewater.services.ssm_service import SSMService, get_ssm_service  # noqa: E402
from bluewater.services.stripe_service import StripeService, get_stripe_service  # noqa: E402
from bluewater.services.tables import create_tables  # noqa: E402

TABLE_PREFIX = os.environ["DYNAMODB_TABLE_PREFIX"]
WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
REGION = "eu-west-1"


# === Singleton resets ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset cached services and settings before and after each test.

    Tests using mock_aws need a fresh DynamoDB/SSM client created inside
    the mock context rather than one left over from a previous test.
    """
    from bluewater_api.dependencies import reset_services

    def _reset() -> None:
        reset_services()
        reset_dynamodb_service()
        reset_settings()
        get_stripe_service.cache_clear()
        get_ssm_service.cache_clear()
        SSMService.clear_cache()

    _reset()
    yield
    _reset()


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = REGION


# === DynamoDB Fixtures ===


@pytest.fixture
def dynamodb_tables(aws_credentials: None) -> Generator[None, None, None]:
    """Create every booking table inside a moto context."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name=REGION)
        create_tables(client, TABLE_PREFIX)
        yield


@pytest.fixture
def db(dynamodb_tables: None) -> DynamoDBService:
    """DynamoDBService bound to the mocked tables."""
    return DynamoDBService()


def _table(name: str) -> Any:
    return boto3.resource("dynamodb", region_name=REGION).Table(f"{TABLE_PREFIX}-{name}")


@pytest.fixture
def get_table(dynamodb_tables: None) -> Callable[[str], Any]:
    """Resource handle for a mocked table, for direct seeding and assertions."""
    return _table


# === Sample catalog ===

SAMPLE_COURSES = [
    {"course_id": 1, "title": "Open Water Diver", "price": Decimal("450.00"), "order_index": 1},
    {"course_id": 2, "title": "Advanced Open Water", "price": Decimal("380.00"), "order_index": 2},
    {"course_id": 3, "title": "Rescue Diver", "price": Decimal("420.00"), "order_index": 3},
    {"course_id": 4, "title": "Discover Scuba", "price": Decimal("0"), "order_index": 4},
]

SAMPLE_TRIPS = [
    {"trip_id": 1, "title": "Silfra Fissure", "price": Decimal("199.99")},
]

SAMPLE_RENTALS = [
    {
        "rental_id": 1,
        "title": "BCD size M",
        "price": Decimal("45.00"),
        "duration": "1 day",
        "status": "available",
        "location": "Main shop",
    },
    {
        "rental_id": 2,
        "title": "Drysuit size L",
        "price": Decimal("19.995"),
        "duration": "1 day",
        "status": "available",
        "location": "Main shop",
    },
    {
        "rental_id": 3,
        "title": "Underwater scooter",
        "price": Decimal("120.00"),
        "duration": "1 day",
        "status": "rented",
        "location": "Harbour",
        "active_booking_id": 999,
    },
]


@pytest.fixture
def seeded_catalog(dynamodb_tables: None) -> dict[str, list[dict[str, Any]]]:
    """Write the sample courses, trips and rentals."""
    for name, items in (
        ("courses", SAMPLE_COURSES),
        ("trips", SAMPLE_TRIPS),
        ("rentals", SAMPLE_RENTALS),
    ):
        for item in items:
            _table(name).put_item(Item=dict(item))
    return {"courses": SAMPLE_COURSES, "trips": SAMPLE_TRIPS, "rentals": SAMPLE_RENTALS}


@pytest.fixture
def catalog(db: DynamoDBService, seeded_catalog: dict[str, Any]) -> CourseService:
    return CourseService(db)


# === Stripe Fixtures ===


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        stripe_secret_key="sk_test_fake_key",
        stripe_webhook_secret=WEBHOOK_SECRET,
        currency="eur",
    )


def make_intent(
    intent_id: str = "pi_test_123",
    status: str = "requires_payment_method",
    amount: int = 4500,
    metadata: dict[str, str] | None = None,
) -> MagicMock:
    """Shape of a stripe.PaymentIntent as far as StripeService reads it."""
    intent = MagicMock()
    intent.id = intent_id
    intent.client_secret = f"{intent_id}_secret_abc"
    intent.status = status
    intent.amount = amount
    intent.currency = "eur"
    intent.metadata = metadata or {}
    return intent


@pytest.fixture
def mock_stripe_client() -> Generator[MagicMock, None, None]:
    """Patch StripeClient; yields the client instance StripeService will use."""
    with patch("bluewater.services.stripe_service.StripeClient") as mock_class:
        client = MagicMock()
        client.payment_intents.create.return_value = make_intent()
        client.payment_intents.retrieve.return_value = make_intent(status="succeeded")
        mock_class.return_value = client
        yield client


@pytest.fixture
def stripe_service(test_settings: Settings, mock_stripe_client: MagicMock) -> StripeService:
    return StripeService(settings=test_settings)


# === Webhook helpers ===


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header for the payload.

    Stripe signs "{timestamp}.{payload}" with HMAC-SHA256 and sends
    t={timestamp},v1={signature}.
    """
    ts = timestamp if timestamp is not None else int(time.time())
    signed = f"{ts}.{payload}"
    signature = hmac.new(
        secret.encode("utf-8"), signed.encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"t={ts},v1={signature}"


def build_event(
    event_id: str = "evt_test_001",
    event_type: str = "payment_intent.succeeded",
    intent_id: str = "pi_test_123",
    metadata: dict[str, str] | None = None,
) -> str:
    """Serialized Stripe event wrapping a PaymentIntent."""
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "created": int(time.time()),
            "data": {
                "object": {
                    "id": intent_id,
                    "object": "payment_intent",
                    "amount": 4500,
                    "currency": "eur",
                    "status": "succeeded",
                    "metadata": metadata or {},
                }
            },
        }
    )


@pytest.fixture
def intent_factory() -> Callable[..., MagicMock]:
    """make_intent as a fixture."""
    return make_intent


@pytest.fixture
def course_intent(intent_factory: Callable[..., MagicMock]) -> Callable[..., MagicMock]:
    """A PaymentIntent opened by a course checkout, as Stripe returns it.

    Defaults match course 1 (450.00 EUR) bought by user 42.
    """

    def _intent(
        intent_id: str = "pi_course_1",
        *,
        user_id: int = 42,
        course_id: int = 1,
        status: str = "succeeded",
        amount: int = 45000,
        purpose: str = ENROLLMENT_PURPOSE,
    ) -> MagicMock:
        return intent_factory(
            intent_id,
            status=status,
            amount=amount,
            metadata={"purpose": purpose, "courseId": str(course_id), "userId": str(user_id)},
        )

    return _intent


@pytest.fixture
def sign_webhook() -> Callable[..., str]:
    """sign_payload as a fixture."""
    return sign_payload


@pytest.fixture
def event_factory() -> Callable[..., str]:
    """build_event as a fixture."""
    return build_event
