#!/usr/bin/env python3
"""Seed development database with catalog data.

This script populates the courses, trips and rentals tables with realistic
dive center data for local development and testing. Catalog CRUD is not
part of the API, so this is how a fresh environment gets something to book.

Usage:
    python scripts/seed_data.py --env dev
    python scripts/seed_data.py --env dev --clear-first
    python scripts/seed_data.py --env dev --courses-only
"""

import argparse
import os
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

# Add shared package to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "shared" / "src"))

import boto3  # noqa: E402

# Global region setting (set by main() from args)
_AWS_REGION: str | None = None

COURSES = [
    ("Discover Scuba Diving", "120.00"),
    ("Open Water Diver", "450.00"),
    ("Advanced Open Water", "380.00"),
    ("Rescue Diver", "420.00"),
    ("Enriched Air Nitrox", "180.00"),
]

TRIPS = [
    ("Blue Hole Morning Dive", "85.00"),
    ("Wreck Dive: SS Thistlegorm", "140.00"),
    ("Night Dive at the House Reef", "65.00"),
]

RENTALS = [
    ("BCD size M", "15.00", "1 day", "Main shop"),
    ("Regulator set", "20.00", "1 day", "Main shop"),
    ("5mm wetsuit size L", "12.50", "1 day", "Main shop"),
    ("Underwater camera", "45.00", "3 days", "Beach hut"),
]


def get_dynamodb_resource():
    """Get DynamoDB resource with configured region."""
    if _AWS_REGION:
        return boto3.resource("dynamodb", region_name=_AWS_REGION)
    return boto3.resource("dynamodb")


def get_table_name(env: str, table: str) -> str:
    """Get full table name with environment prefix."""
    prefix = os.environ.get("DYNAMODB_TABLE_PREFIX", f"bluewater-{env}")
    return f"{prefix}-{table}"


def create_courses(env: str) -> list[dict]:
    """Create courses with a contiguous display order starting at 1."""
    now = datetime.now(timezone.utc).isoformat()
    courses = [
        {
            "course_id": index,
            "title": title,
            "price": Decimal(price),
            "order_index": index,
            "updated_at": now,
        }
        for index, (title, price) in enumerate(COURSES, start=1)
    ]

    table = get_dynamodb_resource().Table(get_table_name(env, "courses"))
    print(f"Seeding courses table: {table.name}")
    with table.batch_writer() as batch:
        for course in courses:
            batch.put_item(Item=course)
            print(f"  ✓ #{course['order_index']} {course['title']}: €{course['price']}")
    return courses


def create_trips(env: str) -> list[dict]:
    trips = [
        {"trip_id": index, "title": title, "price": Decimal(price)}
        for index, (title, price) in enumerate(TRIPS, start=1)
    ]

    table = get_dynamodb_resource().Table(get_table_name(env, "trips"))
    print(f"Seeding trips table: {table.name}")
    with table.batch_writer() as batch:
        for trip in trips:
            batch.put_item(Item=trip)
            print(f"  ✓ {trip['title']}: €{trip['price']}")
    return trips


def create_rentals(env: str) -> list[dict]:
    """Create rental assets, all available."""
    rentals = [
        {
            "rental_id": index,
            "title": title,
            "price": Decimal(price),
            "duration": duration,
            "location": location,
            "status": "available",
        }
        for index, (title, price, duration, location) in enumerate(RENTALS, start=1)
    ]

    table = get_dynamodb_resource().Table(get_table_name(env, "rentals"))
    print(f"Seeding rentals table: {table.name}")
    with table.batch_writer() as batch:
        for rental in rentals:
            batch.put_item(Item=rental)
            print(f"  ✓ {rental['title']} ({rental['duration']}): €{rental['price']}")
    return rentals


def clear_table(env: str, table_name: str) -> int:
    """Clear all items from a table.

    Returns:
        Number of items deleted
    """
    table = get_dynamodb_resource().Table(get_table_name(env, table_name))
    key_attrs = [k["AttributeName"] for k in table.key_schema]

    count = 0
    kwargs: dict = {}
    while True:
        response = table.scan(**kwargs)
        with table.batch_writer() as batch:
            for item in response.get("Items", []):
                batch.delete_item(Key={k: item[k] for k in key_attrs})
                count += 1
        if not response.get("LastEvaluatedKey"):
            return count
        kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]


def main() -> int:
    """Run the seed script."""
    global _AWS_REGION

    parser = argparse.ArgumentParser(description="Seed development database with catalog data")
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default="dev",
        help="Target environment (default: dev)",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_DEFAULT_REGION", "eu-west-1"),
        help="AWS region (default: eu-west-1 or AWS_DEFAULT_REGION env var)",
    )
    parser.add_argument(
        "--courses-only",
        action="store_true",
        help="Only seed courses",
    )
    parser.add_argument(
        "--clear-first",
        action="store_true",
        help="Clear existing catalog data before seeding",
    )

    args = parser.parse_args()

    # Set global region for boto3 calls
    _AWS_REGION = args.region

    # Safety check for production
    if args.env == "prod":
        confirm = input("⚠️  WARNING: You are about to modify PRODUCTION data. Type 'yes' to continue: ")
        if confirm.lower() != "yes":
            print("Aborted.")
            return 1

    print(f"\n🌱 Seeding {args.env} environment (region: {args.region})\n")

    if args.clear_first:
        print("Clearing existing data...")
        tables = ["courses"] if args.courses_only else ["courses", "trips", "rentals"]
        for table in tables:
            try:
                count = clear_table(args.env, table)
                print(f"  Cleared {count} items from {table}")
            except Exception as e:
                print(f"  Could not clear {table}: {e}")
        print()

    try:
        create_courses(args.env)
    except Exception as e:
        print(f"  ❌ Failed to seed courses: {e}")
        return 1

    if args.courses_only:
        print("\n✅ Courses seeded successfully!")
        return 0

    for seed in (create_trips, create_rentals):
        print()
        try:
            seed(args.env)
        except Exception as e:
            print(f"  ❌ Failed to run {seed.__name__}: {e}")
            # Non-fatal, continue

    print("\n✅ Seed completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
