"""DynamoDB table definitions for the booking lifecycle.

Names are given without the environment prefix; create_tables() prepends it.
Shared by scripts/create_tables.py and the moto-backed test fixtures.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def _gsi(index_name: str, hash_key: str, range_key: str | None = None) -> dict[str, Any]:
    key_schema = [{"AttributeName": hash_key, "KeyType": "HASH"}]
    if range_key:
        key_schema.append({"AttributeName": range_key, "KeyType": "RANGE"})
    return {
        "IndexName": index_name,
        "KeySchema": key_schema,
        "Projection": {"ProjectionType": "ALL"},
    }


TABLE_DEFINITIONS: dict[str, dict[str, Any]] = {
    "courses": {
        "KeySchema": [{"AttributeName": "course_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "course_id", "AttributeType": "N"}],
    },
    "trips": {
        "KeySchema": [{"AttributeName": "trip_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "trip_id", "AttributeType": "N"}],
    },
    "rentals": {
        "KeySchema": [{"AttributeName": "rental_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "rental_id", "AttributeType": "N"}],
    },
    "bookings": {
        "KeySchema": [{"AttributeName": "booking_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "booking_id", "AttributeType": "N"},
            {"AttributeName": "user_id", "AttributeType": "N"},
            {"AttributeName": "created_at", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [_gsi("user_id-index", "user_id", "created_at")],
    },
    "rental-bookings": {
        "KeySchema": [{"AttributeName": "booking_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "booking_id", "AttributeType": "N"},
            {"AttributeName": "user_id", "AttributeType": "N"},
            {"AttributeName": "created_at", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [_gsi("user_id-index", "user_id", "created_at")],
    },
    "enrollments": {
        "KeySchema": [{"AttributeName": "enrollment_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "enrollment_id", "AttributeType": "N"},
            {"AttributeName": "user_id", "AttributeType": "N"},
            {"AttributeName": "created_at", "AttributeType": "S"},
            {"AttributeName": "payment_intent_id", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            _gsi("user_id-index", "user_id", "created_at"),
            _gsi("payment_intent_id-index", "payment_intent_id"),
        ],
    },
    # One item per (user, course); its existence is the uniqueness guarantee
    "enrollment-keys": {
        "KeySchema": [{"AttributeName": "user_course", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "user_course", "AttributeType": "S"}],
    },
    # One item per PaymentIntent that paid for an enrollment; never deleted
    "enrollment-intents": {
        "KeySchema": [{"AttributeName": "payment_intent_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "payment_intent_id", "AttributeType": "S"}],
    },
    "counters": {
        "KeySchema": [{"AttributeName": "counter_name", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "counter_name", "AttributeType": "S"}],
    },
    "payment-webhook-events": {
        "KeySchema": [{"AttributeName": "event_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "event_id", "AttributeType": "S"}],
    },
}


def create_tables(client: Any, prefix: str) -> list[str]:
    """Create every table that does not exist yet.

    Args:
        client: boto3 DynamoDB client
        prefix: Table name prefix, e.g. "bluewater-dev"

    Returns:
        Full names of the tables that were created
    """
    existing = set(client.list_tables().get("TableNames", []))
    created: list[str] = []

    for table, definition in TABLE_DEFINITIONS.items():
        name = f"{prefix}-{table}"
        if name in existing:
            logger.info("Table %s already exists", name)
            continue

        client.create_table(
            TableName=name,
            BillingMode="PAY_PER_REQUEST",
            **definition,
        )
        created.append(name)
        logger.info("Created table %s", name)

    return created
