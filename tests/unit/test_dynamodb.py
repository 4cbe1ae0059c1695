"""Unit tests for the DynamoDB wrapper and table definitions."""

from typing import Any

import boto3
import pytest

from bluewater.services.dynamodb import (
    MAX_TRANSACTION_ITEMS,
    DynamoDBService,
    to_decimal,
)
from bluewater.services.tables import TABLE_DEFINITIONS, create_tables


class TestTables:
    def test_all_tables_created(self, db: DynamoDBService) -> None:
        names = set(boto3.client("dynamodb", region_name="eu-west-1").list_tables()["TableNames"])

        assert {db.table_name(t) for t in TABLE_DEFINITIONS} <= names

    def test_create_tables_skips_existing(self, dynamodb_tables: None) -> None:
        client = boto3.client("dynamodb", region_name="eu-west-1")

        assert create_tables(client, "test-bluewater") == []


class TestConditionalWrites:
    def test_put_condition_failure_returns_false(self, db: DynamoDBService) -> None:
        item = {"event_id": "evt_1", "event_type": "x"}
        condition = "attribute_not_exists(event_id)"

        assert db.put_item("payment-webhook-events", item, condition) is True
        assert db.put_item("payment-webhook-events", item, condition) is False

    def test_update_condition_failure_returns_none(self, db: DynamoDBService) -> None:
        result = db.update_item(
            "bookings",
            {"booking_id": 1},
            "SET #s = :s",
            {":s": "completed"},
            {"#s": "status"},
            condition_expression="attribute_exists(booking_id)",
        )

        assert result is None

    def test_cancelled_transaction_writes_nothing(
        self, db: DynamoDBService, get_table: Any
    ) -> None:
        ok = db.transact_write(
            [
                db.tx_put("enrollment-keys", {"user_course": "1#1"}),
                db.tx_update(
                    "rentals",
                    {"rental_id": 1},
                    "SET #s = :r",
                    {":r": "rented"},
                    {"#s": "status"},
                    condition_expression="attribute_exists(rental_id)",
                ),
            ]
        )

        assert ok is False
        assert get_table("enrollment-keys").scan()["Items"] == []

    def test_transaction_size_limit(self, db: DynamoDBService) -> None:
        items = [db.tx_delete("counters", {"counter_name": str(i)}) for i in range(MAX_TRANSACTION_ITEMS + 1)]

        with pytest.raises(ValueError):
            db.transact_write(items)


class TestCounters:
    def test_next_id_increments(self, db: DynamoDBService) -> None:
        assert [db.next_id("bookings") for _ in range(3)] == [1, 2, 3]
        assert db.next_id("enrollments") == 1


class TestBatchGet:
    def test_returns_only_existing(self, catalog: Any, db: DynamoDBService) -> None:
        items = db.batch_get("courses", [{"course_id": 1}, {"course_id": 99}, {"course_id": 3}])

        assert sorted(int(i["course_id"]) for i in items) == [1, 3]

    def test_empty_keys(self, db: DynamoDBService) -> None:
        assert db.batch_get("courses", []) == []


def test_to_decimal() -> None:
    assert to_decimal(None) is None
    assert str(to_decimal(19.99)) == "19.99"
